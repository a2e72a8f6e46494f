"""Render documentation for a CloudFormation resource type in the terminal."""

from __future__ import annotations

import argparse
import sys
from typing import Mapping, Sequence

from rich.console import Console
from rich.markdown import Markdown
from rich.theme import Theme

from cfnlsp.schema import (
    Handler,
    ResourceInfo,
    SchemaError,
    extract_resource_from_bundle,
)

TABLE_HEADER = "\n|:-:|-\n|**Method**|**Name**|\n|:-:|-\n"
TABLE_SEPARATOR = "|:-:|-"


def make_theme() -> Theme:
    """Return the colour theme used to display resource documentation."""
    header = "bold rgb(255,187,0)"
    return Theme(
        {
            "markdown.h1": header,
            "markdown.h2": header,
            "markdown.h3": header,
            "markdown.strong": "bold yellow",
            "markdown.em": "italic magenta on rgb(30,30,40)",
            "markdown.item.bullet": "yellow",
            "markdown.block_quote": "yellow",
        }
    )


def render_table(permissions: Mapping[Handler, Sequence[str] | None]) -> str:
    """Render the handler permissions as a markdown table."""
    rows = []
    for handler in Handler:
        handler_permissions = permissions.get(handler)
        if handler_permissions is None:
            continue
        for position, permission in enumerate(handler_permissions):
            method = str(handler) if position == 0 else ""
            rows.append(f"|{method}|{permission}|\n")
        rows.append(f"{TABLE_SEPARATOR}\n")
    return TABLE_HEADER + "".join(rows)


def render_to_markdown(resource_info: ResourceInfo) -> str:
    """Render the information about one resource type as markdown."""
    write_only = sorted({p.split("/")[0] for p in resource_info.write_only_properties})
    lines = [
        f"# {resource_info.type_name}",
        "",
        "## Description",
        resource_info.description or "",
        "",
        "## Physical resource id",
        resource_info.primary_identifier,
        "",
        "## Properties that require replacement",
        *(f"* {prop}" for prop in resource_info.create_only_properties),
        "",
        "## Properties generated by CloudFormation",
        *(f"* {prop}" for prop in resource_info.read_only_properties),
        "",
        "## Properties not available through intrinsics",
        *(f"* {prop}" for prop in write_only),
        "",
        "## Handlers",
    ]
    return "\n".join(lines) + "\n" + render_table(resource_info.handler_permissions)


def main(argv: Sequence[str] | None = None) -> int:
    """Print the documentation of a resource type given on the command line."""
    parser = argparse.ArgumentParser(
        prog="cfn-docs", description="Show documentation for a CloudFormation resource type."
    )
    parser.add_argument("resource_type", help="resource type, such as AWS::S3::Bucket")
    parser.add_argument("--bundle", default=None, help="path of the schema bundle")
    args = parser.parse_args(argv)

    try:
        resource_info = extract_resource_from_bundle(args.resource_type, args.bundle)
    except SchemaError as exc:
        cause = f": {exc.__cause__}" if exc.__cause__ is not None else ""
        print(f"Error: Could not read resource schema: {exc}{cause}", file=sys.stderr)
        return 1

    markdown = render_to_markdown(resource_info)
    console = Console(theme=make_theme())
    console.print(Markdown(markdown))
    return 0


if __name__ == "__main__":
    sys.exit(main())
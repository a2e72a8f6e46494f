"""Inspecting the text of CloudFormation templates."""

from __future__ import annotations

import enum
import os
import re
from pathlib import Path
from typing import Union

_RESOURCE_TYPE = re.compile(r'AWS::[^\s"]*')


class TemplateLanguage(enum.Enum):
    """The language a template is written in."""

    YAML = "yaml"
    JSON = "json"


def detect_template_language(
    filename: Union[str, "os.PathLike[str]"], text: str
) -> TemplateLanguage:
    """Guess the template language from the file extension, then from the content."""
    suffix = Path(filename).suffix
    if suffix == ".json":
        return TemplateLanguage.JSON
    if suffix in (".yaml", ".yml"):
        return TemplateLanguage.YAML
    if text.strip().startswith("{"):
        return TemplateLanguage.JSON
    return TemplateLanguage.YAML


def should_complete(line: str, language: TemplateLanguage) -> bool:
    """Return whether resource type completion applies to this line."""
    prefix = '"Type":' if language is TemplateLanguage.JSON else "Type:"
    return line.lstrip().startswith(prefix)


def extract_resource_type(line: str, character: int) -> str | None:
    """Return the resource type under the cursor at ``character``, if any."""
    for match in _RESOURCE_TYPE.finditer(line):
        if match.start() <= character < match.end():
            return match.group()
    return None
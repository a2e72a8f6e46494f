"""Reading CloudFormation resource schemas from a zipped schema bundle."""

from __future__ import annotations

import enum
import functools
import json
import os
import zipfile
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Any, Iterator, Union

BUNDLE_FILENAME = "CloudformationSchema.zip"
BUNDLE_ENV_VAR = "CFN_LSP_SCHEMA_BUNDLE"

PathLike = Union[str, "os.PathLike[str]"]


class SchemaError(Exception):
    """Base error for failures while reading resource schemas."""


class ParseJsonError(SchemaError):
    """A schema file held JSON that could not be parsed or had the wrong shape."""

    def __init__(self, filename: str, json_error: Any) -> None:
        self.filename = filename
        self.json_error = json_error
        super().__init__(f"parsing json from file {filename}: {json_error}")


class ExtractingResourceInfoError(SchemaError):
    """Resource information could not be extracted from a file in the bundle."""

    def __init__(self, filename: str) -> None:
        self.filename = filename
        super().__init__(f"extracting resource info from file {filename}")


class Handler(enum.Enum):
    """A resource lifecycle handler."""

    CREATE = "Create"
    READ = "Read"
    UPDATE = "Update"
    DELETE = "Delete"

    def __str__(self) -> str:
        return self.value


_HANDLER_KEYS = {
    "create": Handler.CREATE,
    "read": Handler.READ,
    "update": Handler.UPDATE,
    "delete": Handler.DELETE,
}


@dataclass
class ResourceInfo:
    """Information about one resource type taken from its schema."""

    type_name: str
    description: str | None = None
    handler_permissions: dict[Handler, list[str] | None] = field(default_factory=dict)
    create_only_properties: list[str] = field(default_factory=list)
    primary_identifier: str = ""
    read_only_properties: list[str] = field(default_factory=list)
    write_only_properties: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class Resource:
    """A resource type name with its description."""

    type_name: str
    description: str | None = None


def default_bundle_path() -> Path:
    """Return the schema bundle location, overridable by an environment variable."""
    override = os.environ.get(BUNDLE_ENV_VAR)
    if override:
        return Path(override)
    return Path(__file__).resolve().parent / BUNDLE_FILENAME


@contextmanager
def _archive_errors() -> Iterator[None]:
    try:
        yield
    except (zipfile.BadZipFile, zipfile.LargeZipFile, NotImplementedError) as exc:
        raise SchemaError("zip archive error") from exc
    except OSError as exc:
        raise SchemaError("reading file contents") from exc


def _ascii_lower(text: str) -> str:
    return "".join(ch.lower() if ch.isascii() else ch for ch in text)


def _strip_properties_prefix(path: str) -> str:
    return path.replace("/properties/", "")


def _string_list(data: dict, key: str, filename: str) -> list[str]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ParseJsonError(filename, f"field {key!r} must be a list of strings")
    return value


def _load_schema(filename: str, stream: IO) -> dict:
    try:
        data = json.load(stream)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ParseJsonError(filename, exc) from exc
    if not isinstance(data, dict):
        raise ParseJsonError(filename, "expected a JSON object")
    if not isinstance(data.get("typeName"), str):
        raise ParseJsonError(filename, "missing string field 'typeName'")
    description = data.get("description")
    if description is not None and not isinstance(description, str):
        raise ParseJsonError(filename, "field 'description' must be a string")
    handlers = data.get("handlers")
    if handlers is not None:
        if not isinstance(handlers, dict) or not all(
            isinstance(details, dict) for details in handlers.values()
        ):
            raise ParseJsonError(filename, "field 'handlers' must map names to objects")
    for key in (
        "createOnlyProperties",
        "primaryIdentifier",
        "readOnlyProperties",
        "writeOnlyProperties",
    ):
        _string_list(data, key, filename)
    return data


def extract_from_file(filename: str, stream: IO) -> ResourceInfo:
    """Parse one resource schema document from an open stream."""
    with _archive_errors():
        schema = _load_schema(filename, stream)

    info = ResourceInfo(
        type_name=schema["typeName"],
        description=schema.get("description"),
        read_only_properties=[
            _strip_properties_prefix(p)
            for p in _string_list(schema, "readOnlyProperties", filename)
        ],
        write_only_properties=[
            _strip_properties_prefix(p)
            for p in _string_list(schema, "writeOnlyProperties", filename)
        ],
        create_only_properties=[
            _strip_properties_prefix(p)
            for p in _string_list(schema, "createOnlyProperties", filename)
        ],
        primary_identifier="|".join(
            _strip_properties_prefix(p)
            for p in _string_list(schema, "primaryIdentifier", filename)
        ),
    )
    for name, details in (schema.get("handlers") or {}).items():
        handler = _HANDLER_KEYS.get(name)
        if handler is None:
            continue
        permissions = details.get("permissions")
        if isinstance(permissions, list):
            info.handler_permissions[handler] = [
                p for p in permissions if isinstance(p, str)
            ]
    return info


def extract_from_bundle(source: PathLike | IO[bytes]) -> list[ResourceInfo]:
    """Extract every resource schema held in a zip bundle."""
    resources = []
    with _archive_errors(), zipfile.ZipFile(source) as archive:
        for entry in archive.infolist():
            if not entry.filename.endswith(".json"):
                continue
            try:
                with archive.open(entry) as stream:
                    resources.append(extract_from_file(entry.filename, stream))
            except SchemaError as exc:
                raise ExtractingResourceInfoError(entry.filename) from exc
    return resources


def extract_resource_from_bundle(
    resource_type: str, bundle_path: PathLike | None = None
) -> ResourceInfo:
    """Look up one resource type, such as ``AWS::S3::Bucket``, in the bundle."""
    path = Path(bundle_path) if bundle_path is not None else default_bundle_path()
    name = f"{_ascii_lower(resource_type).replace('::', '-')}.json"
    with _archive_errors(), zipfile.ZipFile(path) as archive:
        try:
            entry = archive.getinfo(name)
        except KeyError as exc:
            raise SchemaError("zip archive error") from exc
        try:
            with archive.open(entry) as stream:
                return extract_from_file(name, stream)
        except SchemaError as exc:
            raise ExtractingResourceInfoError(name) from exc


@functools.lru_cache(maxsize=None)
def _load_resource_types(path: str) -> tuple[Resource, ...]:
    resources = []
    with _archive_errors(), zipfile.ZipFile(path) as archive:
        for entry in archive.infolist():
            if not entry.filename.endswith(".json"):
                continue
            with archive.open(entry) as stream:
                schema = _load_schema(entry.filename, stream)
            resources.append(
                Resource(
                    type_name=schema["typeName"],
                    description=schema.get("description"),
                )
            )
    return tuple(resources)


def get_resource_types(bundle_path: PathLike | None = None) -> tuple[Resource, ...]:
    """Return the name and description of every resource type in the bundle, cached."""
    path = Path(bundle_path) if bundle_path is not None else default_bundle_path()
    return _load_resource_types(str(path.resolve()))
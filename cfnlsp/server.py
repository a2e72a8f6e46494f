"""A language server for CloudFormation templates speaking JSON-RPC over stdio."""

from __future__ import annotations

import argparse
import json
import logging
import sys
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Any, Callable, Sequence
from urllib.parse import urlparse
from urllib.request import url2pathname

from cfnlsp.schema import (
    PathLike,
    SchemaError,
    extract_resource_from_bundle,
    get_resource_types,
)
from cfnlsp.template import (
    detect_template_language,
    extract_resource_type,
    should_complete,
)

logger = logging.getLogger(__name__)

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

TEXT_DOCUMENT_SYNC_FULL = 1
COMPLETION_ITEM_KIND_CLASS = 7
MARKUP_KIND_MARKDOWN = "markdown"


class JsonRpcError(Exception):
    """An error that is reported to the client as a JSON-RPC error object."""

    def __init__(self, code: int, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(f"{message} ({code})")

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message}


@dataclass
class _TextDocument:
    uri: str
    text: str
    language_id: str = ""
    version: int = 0


def _uri_to_path(uri: str) -> Path | None:
    parsed = urlparse(uri)
    if parsed.scheme != "file" or parsed.netloc not in ("", "localhost"):
        return None
    if not parsed.path:
        return None
    return Path(url2pathname(parsed.path))


def _nth_line(text: str, index: int) -> str:
    """Return line ``index`` of the text, without its line ending, or ''."""
    lines = text.split("\n")
    if text.endswith("\n"):
        lines.pop()
    if not 0 <= index < len(lines):
        return ""
    return lines[index].removesuffix("\r")


class LanguageServer:
    """Handles the language server requests for CloudFormation templates."""

    def __init__(self, bundle_path: PathLike | None = None) -> None:
        self.bundle_path = bundle_path
        self.current_document: _TextDocument | None = None
        self.exited = False
        self._requests: dict[str, Callable[[Any], Any]] = {
            "initialize": self.initialize,
            "textDocument/completion": self.completion,
            "textDocument/hover": self.hover,
            "shutdown": self.shutdown,
        }
        self._notifications: dict[str, Callable[[Any], None]] = {
            "initialized": lambda params: None,
            "textDocument/didOpen": self.did_open,
            "textDocument/didChange": self.did_change,
            "textDocument/didSave": self.did_save,
            "exit": self._exit,
        }

    def _set_current_document_from_uri(self, uri: str) -> None:
        path = _uri_to_path(uri)
        if path is None:
            logger.warning("cannot be converted to path: %s", uri)
            return
        logger.debug("opened file %s", path)
        try:
            contents = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            logger.warning("could not read file %s", path)
            return
        self.current_document = _TextDocument(uri=uri, text=contents)

    def initialize(self, params: Any) -> dict[str, Any]:
        logger.debug("initializing server: %r", params)
        return {
            "capabilities": {
                "hoverProvider": True,
                "completionProvider": {},
                "textDocumentSync": TEXT_DOCUMENT_SYNC_FULL,
            }
        }

    def did_open(self, params: dict[str, Any]) -> None:
        self._set_current_document_from_uri(params["textDocument"]["uri"])

    def did_change(self, params: dict[str, Any]) -> None:
        if self.current_document is None:
            logger.warning("no current document")
            return
        changes = params.get("contentChanges") or []
        if changes:
            self.current_document.text = changes[0]["text"]

    def did_save(self, params: dict[str, Any]) -> None:
        self._set_current_document_from_uri(params["textDocument"]["uri"])

    def completion(self, params: dict[str, Any]) -> list[dict[str, Any]] | None:
        uri = params["textDocument"]["uri"]
        file_path = _uri_to_path(uri)
        if file_path is None:
            logger.warning("cannot convert URI to file path: %s", uri)
            raise JsonRpcError(INVALID_PARAMS, "Invalid URI")
        document = self.current_document
        if document is None:
            logger.warning("no current document")
            return None
        language = detect_template_language(file_path, document.text)
        position = params["position"]
        line = _nth_line(document.text, int(position["line"]))
        if not should_complete(line, language):
            logger.debug("not completing line %r at %r", line, position)
            return None

        try:
            resources = get_resource_types(self.bundle_path)
        except SchemaError as exc:
            logger.warning("error reading resource types: %s", exc)
            raise JsonRpcError(INTERNAL_ERROR, "Internal error") from exc
        items = []
        for resource in resources:
            item: dict[str, Any] = {
                "label": resource.type_name,
                "kind": COMPLETION_ITEM_KIND_CLASS,
            }
            if resource.description is not None:
                item["documentation"] = resource.description
            items.append(item)
        return items

    def hover(self, params: dict[str, Any]) -> dict[str, Any] | None:
        position = params["position"]
        document = self.current_document
        if document is None:
            logger.warning("no current document")
            return None
        lines = document.text.split("\n")
        index = int(position["line"])
        if not 0 <= index < len(lines):
            return None
        line = lines[index]
        resource_type = extract_resource_type(line, int(position["character"]))
        if resource_type is None:
            logger.warning("no resource name found in %r at %r", line, position)
            return None
        try:
            info = extract_resource_from_bundle(resource_type, self.bundle_path)
        except SchemaError as exc:
            logger.warning("error extracting resource info: %s", exc)
            raise JsonRpcError(INTERNAL_ERROR, "Internal error") from exc
        return {
            "contents": {
                "kind": MARKUP_KIND_MARKDOWN,
                "value": info.description or "",
            }
        }

    def shutdown(self, params: Any) -> None:
        return None

    def _exit(self, params: Any) -> None:
        self.exited = True

    def handle(self, message: Any) -> dict[str, Any] | None:
        """Dispatch one decoded message; return the response for a request."""
        if not isinstance(message, dict) or not isinstance(message.get("method"), str):
            request_id = message.get("id") if isinstance(message, dict) else None
            return self._error_response(
                request_id, JsonRpcError(INVALID_REQUEST, "Invalid request")
            )
        method = message["method"]
        params = message.get("params")
        is_request = "id" in message

        if not is_request:
            handler = self._notifications.get(method)
            if handler is None:
                logger.debug("ignoring notification %s", method)
                return None
            try:
                handler(params)
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("bad parameters for %s: %s", method, exc)
            return None

        request_id = message["id"]
        handler = self._requests.get(method)
        if handler is None:
            return self._error_response(
                request_id, JsonRpcError(METHOD_NOT_FOUND, "Method not found")
            )
        try:
            result = handler(params)
        except JsonRpcError as exc:
            return self._error_response(request_id, exc)
        except (KeyError, TypeError, ValueError) as exc:
            return self._error_response(
                request_id, JsonRpcError(INVALID_PARAMS, f"Invalid params: {exc}")
            )
        return {"jsonrpc": "2.0", "id": request_id, "result": result}

    @staticmethod
    def _error_response(request_id: Any, error: JsonRpcError) -> dict[str, Any]:
        return {"jsonrpc": "2.0", "id": request_id, "error": error.to_dict()}


def read_message(stream: IO[bytes]) -> Any:
    """Read one framed message; return None at the end of the stream."""
    headers: dict[str, str] = {}
    while True:
        raw = stream.readline()
        if not raw:
            if headers:
                raise JsonRpcError(PARSE_ERROR, "unexpected end of stream")
            return None
        raw = raw.rstrip(b"\r\n")
        if not raw:
            if headers:
                break
            continue
        name, sep, value = raw.decode("ascii", errors="replace").partition(":")
        if not sep:
            raise JsonRpcError(PARSE_ERROR, f"malformed header: {raw!r}")
        headers[name.strip().lower()] = value.strip()

    try:
        length = int(headers["content-length"])
    except (KeyError, ValueError) as exc:
        raise JsonRpcError(PARSE_ERROR, "missing or invalid Content-Length") from exc
    body = stream.read(length)
    if len(body) < length:
        raise JsonRpcError(PARSE_ERROR, "truncated message body")
    try:
        return json.loads(body)
    except ValueError as exc:
        raise JsonRpcError(PARSE_ERROR, f"invalid JSON: {exc}") from exc


def write_message(stream: IO[bytes], message: Any) -> None:
    """Write one message framed with a Content-Length header."""
    body = json.dumps(message, separators=(",", ":")).encode("utf-8")
    stream.write(f"Content-Length: {len(body)}\r\n\r\n".encode("ascii"))
    stream.write(body)
    stream.flush()


def serve(reader: IO[bytes], writer: IO[bytes], server: LanguageServer) -> None:
    """Answer messages from ``reader`` on ``writer`` until exit or end of input."""
    while not server.exited:
        try:
            message = read_message(reader)
        except JsonRpcError as exc:
            write_message(writer, LanguageServer._error_response(None, exc))
            continue
        if message is None:
            break
        response = server.handle(message)
        if response is not None:
            write_message(writer, response)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the language server on standard input and output."""
    parser = argparse.ArgumentParser(
        prog="cfn-lsp", description="Language server for CloudFormation templates."
    )
    parser.add_argument(
        "--log-file",
        default=str(Path(tempfile.gettempdir()) / "server.log"),
        help="file to write the server log to",
    )
    parser.add_argument("--bundle", default=None, help="path of the schema bundle")
    args = parser.parse_args(argv)

    try:
        handler = logging.FileHandler(args.log_file, mode="w", encoding="utf-8")
    except OSError as exc:
        print(f"Error: creating log file: {exc}", file=sys.stderr)
        return 1
    logging.basicConfig(level=logging.DEBUG, handlers=[handler])

    serve(sys.stdin.buffer, sys.stdout.buffer, LanguageServer(args.bundle))
    return 0


if __name__ == "__main__":
    sys.exit(main())
import io
import json
import zipfile

import pytest

from cfnlsp.server import (
    COMPLETION_ITEM_KIND_CLASS,
    INTERNAL_ERROR,
    INVALID_PARAMS,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    TEXT_DOCUMENT_SYNC_FULL,
    JsonRpcError,
    LanguageServer,
    read_message,
    serve,
    write_message,
)

YAML_TEMPLATE = "Resources:\n  Topic:\n    Type: AWS::SNS::Topic\n"


@pytest.fixture
def bundle(tmp_path):
    path = tmp_path / "bundle.zip"
    with zipfile.ZipFile(path, "w") as archive:
        archive.writestr(
            "aws-sns-topic.json",
            json.dumps({"typeName": "AWS::SNS::Topic", "description": "An SNS topic"}),
        )
        archive.writestr(
            "aws-s3-bucket.json", json.dumps({"typeName": "AWS::S3::Bucket"})
        )
    return path


@pytest.fixture
def template(tmp_path):
    path = tmp_path / "template.yaml"
    path.write_text(YAML_TEMPLATE, encoding="utf-8")
    return path


@pytest.fixture
def server(bundle):
    return LanguageServer(bundle_path=bundle)


def open_doc(server, path):
    server.did_open({"textDocument": {"uri": path.as_uri()}})


def position_params(path, line, character):
    return {
        "textDocument": {"uri": path.as_uri()},
        "position": {"line": line, "character": character},
    }


def test_initialize_capabilities(server):
    caps = server.initialize({})["capabilities"]
    assert caps["hoverProvider"] is True
    assert caps["textDocumentSync"] == TEXT_DOCUMENT_SYNC_FULL
    assert caps["completionProvider"] == {}


def test_did_open_reads_file(server, template):
    open_doc(server, template)
    assert server.current_document.text == YAML_TEMPLATE
    assert server.current_document.uri == template.as_uri()


def test_did_open_non_file_uri_is_ignored(server):
    server.did_open({"textDocument": {"uri": "https://example.com/template.yaml"}})
    assert server.current_document is None


def test_did_open_missing_file_is_ignored(server, tmp_path):
    open_doc(server, tmp_path / "missing.yaml")
    assert server.current_document is None


def test_did_change_replaces_text(server, template):
    open_doc(server, template)
    server.did_change({"contentChanges": [{"text": "new"}, {"text": "other"}]})
    assert server.current_document.text == "new"


def test_did_change_without_changes_keeps_text(server, template):
    open_doc(server, template)
    server.did_change({"contentChanges": []})
    assert server.current_document.text == YAML_TEMPLATE


def test_did_change_without_document(server):
    server.did_change({"contentChanges": [{"text": "new"}]})
    assert server.current_document is None


def test_did_save_rereads_file(server, template):
    open_doc(server, template)
    server.did_change({"contentChanges": [{"text": "edited"}]})
    template.write_text("saved", encoding="utf-8")
    server.did_save({"textDocument": {"uri": template.as_uri()}})
    assert server.current_document.text == "saved"


def test_completion_on_type_line(server, template):
    open_doc(server, template)
    items = server.completion(position_params(template, 2, 10))
    labels = {item["label"] for item in items}
    assert labels == {"AWS::SNS::Topic", "AWS::S3::Bucket"}
    assert all(item["kind"] == COMPLETION_ITEM_KIND_CLASS for item in items)
    by_label = {item["label"]: item for item in items}
    assert by_label["AWS::SNS::Topic"]["documentation"] == "An SNS topic"
    assert "documentation" not in by_label["AWS::S3::Bucket"]


def test_completion_elsewhere_returns_none(server, template):
    open_doc(server, template)
    assert server.completion(position_params(template, 0, 3)) is None
    assert server.completion(position_params(template, 50, 0)) is None


def test_completion_json_template(server, tmp_path):
    path = tmp_path / "template.json"
    path.write_text('{\n  "Type": "AWS::SNS::Topic"\n}\n', encoding="utf-8")
    open_doc(server, path)
    items = server.completion(position_params(path, 1, 10))
    assert len(items) == 2


def test_completion_without_document(server, template):
    assert server.completion(position_params(template, 2, 10)) is None


def test_completion_invalid_uri(server):
    params = {
        "textDocument": {"uri": "https://example.com/template.yaml"},
        "position": {"line": 0, "character": 0},
    }
    with pytest.raises(JsonRpcError) as info:
        server.completion(params)
    assert info.value.code == INVALID_PARAMS


def test_hover_shows_description(server, template):
    open_doc(server, template)
    result = server.hover(position_params(template, 2, 12))
    assert result["contents"]["value"] == "An SNS topic"
    assert result["contents"]["kind"] == "markdown"


def test_hover_without_description(server, tmp_path):
    path = tmp_path / "t.yaml"
    path.write_text("Type: AWS::S3::Bucket\n", encoding="utf-8")
    open_doc(server, path)
    assert server.hover(position_params(path, 0, 8))["contents"]["value"] == ""


def test_hover_not_over_type(server, template):
    open_doc(server, template)
    assert server.hover(position_params(template, 2, 0)) is None
    assert server.hover(position_params(template, 99, 0)) is None


def test_hover_unknown_type(server, tmp_path):
    path = tmp_path / "t.yaml"
    path.write_text("Type: AWS::Nope::Thing\n", encoding="utf-8")
    open_doc(server, path)
    with pytest.raises(JsonRpcError) as info:
        server.hover(position_params(path, 0, 8))
    assert info.value.code == INTERNAL_ERROR


def test_handle_request_and_errors(server):
    response = server.handle({"jsonrpc": "2.0", "id": 3, "method": "shutdown"})
    assert response == {"jsonrpc": "2.0", "id": 3, "result": None}
    response = server.handle({"jsonrpc": "2.0", "id": 4, "method": "nope"})
    assert response["error"]["code"] == METHOD_NOT_FOUND
    assert server.handle({"jsonrpc": "2.0", "method": "nope"}) is None


def test_handle_bad_params(server):
    response = server.handle(
        {"jsonrpc": "2.0", "id": 5, "method": "textDocument/hover", "params": {}}
    )
    assert response["id"] == 5
    assert response["error"]["code"] == INVALID_PARAMS


def test_message_round_trip():
    stream = io.BytesIO()
    message = {"jsonrpc": "2.0", "id": 1, "result": {"value": "é"}}
    write_message(stream, message)
    assert stream.getvalue().startswith(b"Content-Length: ")
    stream.seek(0)
    assert read_message(stream) == message
    assert read_message(stream) is None


def test_read_message_invalid_json():
    stream = io.BytesIO(b"Content-Length: 3\r\n\r\n{x}")
    with pytest.raises(JsonRpcError) as info:
        read_message(stream)
    assert info.value.code == PARSE_ERROR


def test_serve_session(server):
    incoming = io.BytesIO()
    write_message(incoming, {"jsonrpc": "2.0", "id": 1, "method": "initialize", "params": {}})
    write_message(incoming, {"jsonrpc": "2.0", "id": 2, "method": "shutdown"})
    write_message(incoming, {"jsonrpc": "2.0", "method": "exit"})
    write_message(incoming, {"jsonrpc": "2.0", "id": 3, "method": "shutdown"})
    incoming.seek(0)
    outgoing = io.BytesIO()

    serve(incoming, outgoing, server)

    outgoing.seek(0)
    first = read_message(outgoing)
    second = read_message(outgoing)
    assert first["id"] == 1
    assert first["result"]["capabilities"]["hoverProvider"] is True
    assert second == {"jsonrpc": "2.0", "id": 2, "result": None}
    assert read_message(outgoing) is None
    assert server.exited is True
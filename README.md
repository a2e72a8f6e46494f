# cfnlsp

Tools for working with CloudFormation templates, built on the zipped resource
schema bundle (`CloudformationSchema.zip`, one `<type>.json` schema per
resource type, e.g. `aws-s3-bucket.json`):

- `cfn-lsp` is a language server speaking JSON-RPC over stdin/stdout. It
  offers completion of resource type names on lines starting with `Type:`
  (YAML) or `"Type":` (JSON), and shows a resource type's description when
  you hover over a name such as `AWS::SNS::Topic`.
- `cfn-docs` prints a summary of one resource type to the terminal as styled
  markdown: its description, physical resource id, properties that require
  replacement, properties generated by CloudFormation, write-only properties,
  and the IAM permissions each handler (Create, Read, Update, Delete) needs.

## Installation

```
pip install .
```

## The schema bundle

The schema bundle is not included in the package; you supply it. The tools
look for it at the path in the environment variable `CFN_LSP_SCHEMA_BUNDLE`,
or, when that is unset, at `CloudformationSchema.zip` inside the installed
`cfnlsp` package directory. `cfnlsp.schema.default_bundle_path()` returns the
location in use. Both commands also take `--bundle PATH`.

## Usage

Show documentation for a resource type:

```
cfn-docs AWS::S3::Bucket
cfn-docs --bundle ./CloudformationSchema.zip AWS::IAM::Role
```

If the schema cannot be read, an error is printed and the exit status is 1.

Run the language server; point your editor's LSP client at this command:

```
cfn-lsp
cfn-lsp --log-file ./server.log --bundle ./CloudformationSchema.zip
```

The server writes a debug log, by default to `server.log` in the system's
temporary directory.

## Library use

```python
from cfnlsp.schema import extract_resource_from_bundle, default_bundle_path
from cfnlsp.docs import render_to_markdown

info = extract_resource_from_bundle("AWS::IAM::Role", default_bundle_path())
print(render_to_markdown(info))
```

- `cfnlsp.schema`: `extract_from_file`, `extract_from_bundle`,
  `extract_resource_from_bundle`, `get_resource_types` (cached), the
  `ResourceInfo`, `Resource` and `Handler` types, and the errors
  `SchemaError`, `ParseJsonError` and `ExtractingResourceInfoError`.
- `cfnlsp.template`: `detect_template_language`, `should_complete` and
  `extract_resource_type`.
- `cfnlsp.server`: `LanguageServer`, `read_message`, `write_message` and
  `serve`, which answers framed messages from one binary stream on another.

## Limitations

- The language server only provides completion and hover. It has no
  diagnostics, validation, go-to-definition or template parsing.
- It tracks a single document: the one most recently opened or saved, read
  from disk. Changes are taken as full-text replacements.
- Completion lists every resource type in the bundle without filtering.

## Tests

```
pip install .[test]
pytest
```
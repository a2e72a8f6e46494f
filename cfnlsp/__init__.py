"""CloudFormation resource schema reader, documentation viewer and language server."""

__version__ = "0.1.0"
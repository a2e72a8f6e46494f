[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "cfnlsp"
version = "0.1.0"
description = "Language server and terminal documentation viewer for CloudFormation resource types"
requires-python = ">=3.10"
keywords = ["cloudformation", "lsp", "language-server", "aws", "documentation"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Text Editors :: Integrated Development Environments (IDE)",
]
dependencies = [
    "rich",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
cfn-docs = "cfnlsp.docs:main"
cfn-lsp = "cfnlsp.server:main"

[tool.hatch.build.targets.wheel]
packages = ["cfnlsp"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

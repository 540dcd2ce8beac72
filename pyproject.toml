[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "lspproxy"
version = "0.5.4"
description = "Building blocks of a Language Server Protocol proxy for Emacs: JSON-RPC messages, language configuration and server transport."
requires-python = ">=3.10"
dependencies = []
keywords = ["emacs", "lsp", "language-server", "json-rpc", "proxy"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Text Editors :: Emacs",
    "Topic :: Software Development :: Libraries",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[tool.hatch.build.targets.wheel]
packages = ["lspproxy"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"

[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "minic"
version = "1.0.1"
description = "AST helpers, DOT graph output and an ARM32 assembly back end for a small C-like language"
requires-python = ">=3.10"
dependencies = []
keywords = ["compiler", "arm32", "assembly", "code-generation", "ast", "register-allocation"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Software Development :: Compilers",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["minic"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

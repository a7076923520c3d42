[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "yaklog"
version = "0.1.0"
description = "Structured logging building blocks: size-based rotating file writer, samplers, hooks, sinks and encoding helpers"
requires-python = ">=3.10"
dependencies = []
keywords = ["logging", "log rotation", "sampling", "structured logging", "json"]
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
    "Topic :: System :: Logging",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["yaklog"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

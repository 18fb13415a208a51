[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "martifact"
version = "0.1.0"
description = "Building blocks for software update artifacts: checksums, compression, metadata, state scripts, tar writing and signing"
requires-python = ">=3.10"
keywords = ["update", "artifact", "ota", "signing", "checksum", "tar", "compression"]
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
    "Topic :: System :: Software Distribution",
]
dependencies = [
    "cryptography",
    "zstandard",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["martifact"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "palcpk"
version = "0.1.0"
description = "Unpack RST-format CPK and SMP game archives: XXTEA index decryption and LZO1X decompression"
requires-python = ">=3.10"
dependencies = []
keywords = ["cpk", "smp", "archive", "unpack", "xxtea", "lzo", "game-data"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Archiving",
    "Topic :: Games/Entertainment",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
palcpk = "palcpk.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["palcpk"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true

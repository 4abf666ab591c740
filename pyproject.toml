[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "nesemu"
version = "0.1.0"
description = "NES emulator building blocks: PPU registers and VRAM paging, input ports, controller decoding, video blitting, PCX snapshots and iNES ROM loading"
requires-python = ">=3.10"
dependencies = []
keywords = ["nes", "emulator", "ppu", "ines", "pcx", "joypad"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Emulators",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["nesemu"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

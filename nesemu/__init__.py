"""NES emulation parts: input ports, controller decoding, PPU registers, video blitting, PCX snapshots and iNES ROM loading."""

__version__ = "0.1.0"

__all__ = [
    "controller",
    "input",
    "pcx",
    "ppu",
    "rom",
    "video",
]
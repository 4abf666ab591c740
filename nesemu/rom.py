"""iNES cartridge images: header parsing, ROM/VROM banks, battery RAM and palette files."""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import IntEnum, IntFlag

logger = logging.getLogger(__name__)

INES_MAGIC = b"NES\x1a"
HEADER_LENGTH = 16

TRAINER_OFFSET = 0x1000
TRAINER_LENGTH = 0x200
VRAM_LENGTH = 0x2000
ROM_BANK_LENGTH = 0x4000
VROM_BANK_LENGTH = 0x2000
SRAM_BANK_LENGTH = 0x0400

DISPLAY_MAX_LENGTH = 20
PATH_SEP = "/"
VS_UNISYSTEM_MAPPER = 99

# header byte 6 bits
_HDR_FOURSCREEN = 0x08
_HDR_TRAINER = 0x04
_HDR_BATTERY = 0x02
_HDR_MIRRORTYPE = 0x01

_DISKDUDE = b"iskDude!"

Rgb = tuple[int, int, int]


class Mirror(IntEnum):
    """Nametable mirroring declared by the cartridge."""

    HORIZ = 0
    VERT = 1


class RomFlags(IntFlag):
    """Cartridge features."""

    BATTERY = 0x01
    TRAINER = 0x02
    FOURSCREEN = 0x04
    VERSUS = 0x08


class RomError(Exception):
    """The image is not a usable iNES cartridge."""


def new_extension(name: str | os.PathLike[str], ext: str) -> str:
    """Replace the last four characters of ``name`` (its extension) with ``ext``."""
    name = os.fspath(name)
    if len(name) < 4:
        raise ValueError(f"file name {name!r} is too short to carry an extension")
    return name[:-4] + ext[:4]


@dataclass
class RomInfo:
    """A loaded cartridge and its memories."""

    filename: str
    rom: bytes = b""
    vrom: bytes = b""
    sram: bytearray = field(default_factory=bytearray)
    vram: bytearray | None = None
    rom_banks: int = 0
    vrom_banks: int = 0
    sram_banks: int = 8
    vram_banks: int = 1
    mapper_number: int = 0
    mirror: Mirror = Mirror.HORIZ
    flags: RomFlags = RomFlags(0)
    header_dirty: bool = False

    @property
    def sram_path(self) -> str:
        """Where battery-backed RAM is kept on disk."""
        return new_extension(self.filename, ".sav")

    def describe(self) -> str:
        """A short line for display: name, mapper, sizes, mirroring and feature letters."""
        romname = self.filename.rsplit(PATH_SEP, 1)[-1]
        if len(romname) > DISPLAY_MAX_LENGTH:
            romname = romname[:DISPLAY_MAX_LENGTH - 3] + "..."
        mirror = "V" if self.mirror == Mirror.VERT else "H"
        info = (
            f"{romname} [{self.mapper_number}] "
            f"{self.rom_banks * 16}k/{self.vrom_banks * 8}k {mirror}"
        )
        if self.flags & RomFlags.BATTERY:
            info += "B"
        if self.flags & RomFlags.TRAINER:
            info += "T"
        if self.flags & RomFlags.FOURSCREEN:
            info += "4"
        return info

    def save_sram(self) -> bool:
        """Write battery RAM next to the image; returns whether anything was written."""
        if not self.flags & RomFlags.BATTERY:
            return False
        path = self.sram_path
        try:
            with open(path, "wb") as fp:
                fp.write(bytes(self.sram[:SRAM_BANK_LENGTH * self.sram_banks]))
        except OSError as exc:
            logger.warning("could not write battery RAM to %s: %s", path, exc)
            return False
        logger.info("wrote battery RAM to %s", path)
        return True

    def load_sram(self) -> bool:
        """Read battery RAM saved next to the image; returns whether a file was read."""
        if not self.flags & RomFlags.BATTERY:
            return False
        path = self.sram_path
        try:
            with open(path, "rb") as fp:
                data = fp.read(SRAM_BANK_LENGTH * self.sram_banks)
        except OSError:
            return False
        self.sram[:len(data)] = data
        logger.info("read battery RAM from %s", path)
        return True


def _find_rom(filename: str) -> str | None:
    if os.path.isfile(filename):
        return filename
    if "." not in os.path.basename(filename):
        candidate = filename + ".nes"
        if os.path.isfile(candidate):
            return candidate
    return None


def check_magic(filename: str | os.PathLike[str]) -> bool:
    """True if the file (or the file with ``.nes`` appended) starts with the iNES magic."""
    path = _find_rom(os.fspath(filename))
    if path is None:
        return False
    with open(path, "rb") as fp:
        head = fp.read(HEADER_LENGTH)
    return head[:4] == INES_MAGIC


def parse_header(data: bytes, filename: str) -> RomInfo:
    """Read the 16-byte iNES header at the start of ``data``."""
    if len(data) < HEADER_LENGTH or bytes(data[:4]) != INES_MAGIC:
        raise RomError(f"{filename} is not a valid ROM image")

    rom_banks, vrom_banks, rom_type, hinybble = data[4:8]
    reserved = bytes(data[8:16])

    flags = RomFlags(0)
    if rom_type & _HDR_BATTERY:
        flags |= RomFlags.BATTERY
    if rom_type & _HDR_TRAINER:
        flags |= RomFlags.TRAINER
    if rom_type & _HDR_FOURSCREEN:
        flags |= RomFlags.FOURSCREEN

    mapper = rom_type >> 4
    dirty = reserved != bytes(8)
    if not dirty:
        mapper |= hinybble & 0xF0
    elif hinybble == ord("D") and reserved == _DISKDUDE:
        logger.info("`DiskDude!' found in ROM header, ignoring high mapper nybble")
    else:
        logger.warning("ROM header dirty, possible problem")
        mapper |= hinybble & 0xF0

    if mapper == VS_UNISYSTEM_MAPPER:
        flags |= RomFlags.VERSUS

    return RomInfo(
        filename=filename,
        rom_banks=rom_banks,
        vrom_banks=vrom_banks,
        sram_banks=8,
        vram_banks=1,
        mapper_number=mapper,
        mirror=Mirror.VERT if rom_type & _HDR_MIRRORTYPE else Mirror.HORIZ,
        flags=flags,
        header_dirty=dirty,
    )


def _take(data: bytes, offset: int, length: int, what: str) -> bytes:
    end = offset + length
    if end > len(data):
        raise RomError(f"image is truncated: {what} needs {length} bytes at offset {offset}")
    return bytes(data[offset:end])


def load_rom(
    data: bytes,
    filename: str,
    is_mapper_supported: Callable[[int], bool] = lambda number: True,
) -> RomInfo:
    """Build a cartridge from an iNES image held in memory."""
    info = parse_header(data, filename)

    if not is_mapper_supported(info.mapper_number):
        raise RomError(f"Mapper {info.mapper_number} not yet implemented")

    # iNES does not say whether SRAM is present, so it is always allocated
    info.sram = bytearray(SRAM_BANK_LENGTH * info.sram_banks)

    offset = HEADER_LENGTH
    if info.flags & RomFlags.TRAINER:
        trainer = _take(data, offset, TRAINER_LENGTH, "trainer")
        info.sram[TRAINER_OFFSET:TRAINER_OFFSET + TRAINER_LENGTH] = trainer
        offset += TRAINER_LENGTH
        logger.info("read in trainer at $7000")

    rom_length = ROM_BANK_LENGTH * info.rom_banks
    info.rom = _take(data, offset, rom_length, "PRG-ROM")
    offset += rom_length

    if info.vrom_banks:
        vrom_length = VROM_BANK_LENGTH * info.vrom_banks
        info.vrom = _take(data, offset, vrom_length, "CHR-ROM")
    else:
        info.vram = bytearray(VRAM_LENGTH)

    info.load_sram()
    return info


def load_palette_file(filename: str | os.PathLike[str]) -> list[Rgb] | None:
    """Read a 64-entry RGB palette file; ``None`` if there is no such file.

    Bytes missing from a short file read as 0xFF.
    """
    try:
        with open(filename, "rb") as fp:
            raw = fp.read(64 * 3)
    except FileNotFoundError:
        return None
    raw = raw + b"\xff" * (64 * 3 - len(raw))
    return [(raw[i], raw[i + 1], raw[i + 2]) for i in range(0, 64 * 3, 3)]
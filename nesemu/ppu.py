"""NES picture processing unit: registers, VRAM paging, OAM DMA and palette handling."""

from __future__ import annotations

import random
from collections.abc import Callable, Sequence

# Register addresses
PPU_CTRL0 = 0x2000
PPU_CTRL1 = 0x2001
PPU_STAT = 0x2002
PPU_OAMADDR = 0x2003
PPU_OAMDATA = 0x2004
PPU_SCROLL = 0x2005
PPU_VADDR = 0x2006
PPU_VDATA = 0x2007

PPU_OAMDMA = 0x4014
PPU_JOY0 = 0x4016
PPU_JOY1 = 0x4017

# $2000 bits
CTRL0_NMI = 0x80
CTRL0_OBJ16 = 0x20
CTRL0_BGADDR = 0x10
CTRL0_OBJADDR = 0x08
CTRL0_ADDRINC = 0x04
CTRL0_NAMETAB = 0x03

# $2001 bits
CTRL1_OBJON = 0x10
CTRL1_BGON = 0x08
CTRL1_OBJMASK = 0x04
CTRL1_BGMASK = 0x02

# $2002 bits
STAT_VBLANK = 0x80
STAT_STRIKE = 0x40
STAT_MAXSPRITE = 0x20

# Sprite attribute bits
OAM_VFLIP = 0x80
OAM_HFLIP = 0x40
OAM_BEHIND = 0x20

MAX_SPRITES_PER_LINE = 8

# Pixel flags used in the rendered line buffer
BG_TRANS = 0x80
SP_PIXEL = 0x40

Rgb = tuple[int, int, int]
Page = tuple[bytearray, int]


class CpuBus:
    """The CPU side the PPU talks to: cycle counter, memory reads, DMA stalls and interrupts."""

    def __init__(self, memory: bytearray | None = None) -> None:
        self.memory = memory if memory is not None else bytearray(0x10000)
        self.cycles = 0
        self.nmi_count = 0
        self.release_count = 0
        self.fiq: int | None = None

    def get_cycles(self) -> int:
        """Cycles executed so far in the current timeslice."""
        return self.cycles

    def get_byte(self, address: int) -> int:
        """Read one byte from CPU address space."""
        return self.memory[address & 0xFFFF]

    def burn(self, cycles: int) -> None:
        """Stall the CPU for ``cycles`` cycles."""
        self.cycles += cycles

    def release(self) -> None:
        """Give up the rest of the current timeslice."""
        self.release_count += 1

    def nmi(self) -> None:
        """Raise a non-maskable interrupt."""
        self.nmi_count += 1

    def set_fiq(self, value: int) -> None:
        """Write the frame IRQ control register."""
        self.fiq = value


def build_palette(pal: Sequence[Rgb], gui_pal: Sequence[Rgb] = ()) -> list[Rgb]:
    """Build the 256-entry display palette: the 64 NES colours three times, then the GUI colours."""
    if len(pal) < 64:
        raise ValueError("NES palette needs 64 entries")
    if len(gui_pal) > 64:
        raise ValueError("GUI palette holds at most 64 entries")
    base = [tuple(colour) for colour in pal[:64]]
    curpal: list[Rgb] = base * 3
    curpal.extend(tuple(colour) for colour in gui_pal)
    curpal.extend([(0, 0, 0)] * (256 - len(curpal)))
    return curpal


class Ppu:
    """PPU register file, memory map and sprite memory."""

    def __init__(self, bus: CpuBus, inputs) -> None:
        self.bus = bus
        self.inputs = inputs

        self.nametab = bytearray(0x1000)
        self.oam = bytearray(256)
        self.palette = bytearray(32)
        self.pages: list[Page | None] = [None] * 16

        self.ctrl0 = 0
        self.ctrl1 = 0
        self.stat = 0
        self.oam_addr = 0
        self.vaddr = 0
        self.vaddr_latch = 0
        self.tile_xofs = 0
        self.flipflop = 0
        self.vaddr_inc = 0
        self.tile_nametab = 0

        self.obj_height = 0
        self.obj_base = 0
        self.bg_base = 0

        self.bg_on = False
        self.obj_on = False
        self.obj_mask = False
        self.bg_mask = False

        self.latch = 0
        self.vdata_latch = 0
        self.strobe = 0

        self.strikeflag = False
        self.strike_cycle = 0

        self.latchfunc: Callable[[int, int], None] | None = None
        self.vromswitch: Callable[[int], None] | None = None
        self.palette_listener: Callable[[list[Rgb]], None] | None = None

        self.curpal: list[Rgb] = [(0, 0, 0)] * 256

        self.vram_accessible = False
        self.vram_present = False
        self.drawsprites = True

    # memory map

    def set_page(self, size: int, page_num: int, buffer: bytearray, base: int) -> None:
        """Map ``size`` 1 kB pages from ``page_num`` so that address ``a`` reads ``buffer[a - base]``."""
        if size not in (1, 2, 4, 8):
            return
        for page in range(page_num, page_num + size):
            self.pages[page] = (buffer, base)

    def get_page(self, page: int) -> Page | None:
        """The ``(buffer, base)`` pair mapped at ``page``, or ``None``."""
        return self.pages[page]

    def mirror_high_pages(self) -> None:
        """Make $3000-$3FFF mirror $2000-$2FFF."""
        for page in range(8, 12):
            mapped = self.pages[page]
            if mapped is None:
                self.pages[page + 4] = None
            else:
                buffer, base = mapped
                self.pages[page + 4] = (buffer, base + 0x1000)

    def mirror(self, nt1: int, nt2: int, nt3: int, nt4: int) -> None:
        """Point the four nametable slots at the given 1 kB tables of internal VRAM."""
        for index, table in enumerate((nt1, nt2, nt3, nt4)):
            self.pages[8 + index] = (self.nametab, 0x2000 + index * 0x400 - (table << 10))
        self.mirror_high_pages()

    def _locate(self, address: int) -> tuple[bytearray, int]:
        mapped = self.pages[(address >> 10) & 0x0F]
        if mapped is None:
            raise LookupError(f"PPU address ${address:04X} is not mapped")
        buffer, base = mapped
        return buffer, address - base

    def peek(self, address: int) -> int:
        """Read a byte through the page map."""
        buffer, index = self._locate(address)
        return buffer[index]

    def poke(self, address: int, value: int) -> None:
        """Write a byte through the page map."""
        buffer, index = self._locate(address)
        buffer[index] = value & 0xFF

    # control

    def reset(self, hard: bool) -> None:
        """Reset the registers; a hard reset also fills sprite memory with garbage."""
        if hard:
            self.oam[:] = random.randbytes(256)
        self.ctrl0 = 0
        self.ctrl1 = CTRL1_OBJON | CTRL1_BGON
        self.stat = 0
        self.flipflop = 0
        self.vaddr = self.vaddr_latch = 0x2000
        self.oam_addr = 0
        self.tile_xofs = 0
        self.latch = 0
        self.vram_accessible = True

    def enabled(self) -> bool:
        """True if background or sprites are switched on."""
        return self.bg_on or self.obj_on

    def set_strike(self, x_loc: int) -> None:
        """Record the sprite 0 hit at pixel ``x_loc`` of the current line, once per frame."""
        if not self.strikeflag:
            self.strikeflag = True
            # three pixels per CPU cycle
            self.strike_cycle = self.bus.get_cycles() + x_loc // 3

    def end_scanline(self, scanline: int) -> None:
        """Advance the vertical part of the VRAM address at the end of a visible line."""
        if scanline >= 240 or not self.enabled():
            return
        if (self.vaddr >> 12) == 7:
            self.vaddr &= ~0x7000
            ytile = (self.vaddr >> 5) & 0x1F
            if ytile == 29:
                self.vaddr &= ~0x03E0
                self.vaddr ^= 0x0800
            elif ytile == 31:
                self.vaddr &= ~0x03E0
            else:
                self.vaddr += 0x20
        else:
            self.vaddr += 0x1000

    def check_nmi(self) -> None:
        """Raise an NMI on the CPU if it is enabled in $2000."""
        if self.ctrl0 & CTRL0_NMI:
            self.bus.nmi()

    def set_palette(self, pal: Sequence[Rgb], gui_pal: Sequence[Rgb] = ()) -> None:
        """Install a 64-colour NES palette and notify the listener, if any."""
        self.curpal = build_palette(pal, gui_pal)
        if self.palette_listener is not None:
            self.palette_listener(self.curpal)

    # $4000 range

    def _oam_dma(self, value: int) -> None:
        base = value << 8
        start = self.oam_addr
        for offset in range(256):
            self.oam[(start + offset) & 0xFF] = self.bus.get_byte(base + offset)

        if (start >> 2) & 1:
            for index in range(4, 8):
                self.oam[index] = self.bus.get_byte(base + index - 4)
            for index in range(4):
                self.oam[index] = self.bus.get_byte(base + 252 + index)
        else:
            for index in range(8):
                self.oam[index] = self.bus.get_byte(base + index)

        self.bus.burn(513)
        self.bus.release()

    def write_high(self, address: int, value: int) -> None:
        """Write to OAM DMA, joypad strobe or frame IRQ control."""
        if address == PPU_OAMDMA:
            self._oam_dma(value)
        elif address == PPU_JOY0:
            if self.vromswitch is not None:
                self.vromswitch(value)
            value &= 1
            if value == 0 and self.strobe:
                self.inputs.strobe()
            self.strobe = value
        elif address == PPU_JOY1:
            self.bus.set_fiq(value)

    def read_high(self, address: int) -> int:
        """Read the joypad ports; other addresses read $FF."""
        from .input import InputType

        if address == PPU_JOY0:
            return self.inputs.get(InputType.JOYPAD0)
        if address == PPU_JOY1:
            return self.inputs.get(InputType.ZAPPER | InputType.JOYPAD1)
        return 0xFF

    # $2000-$2007

    def read(self, address: int) -> int:
        """Read a PPU register (mirrored through $3FFF)."""
        register = address & 0x2007
        if register == PPU_STAT:
            value = (self.stat & 0xE0) | (self.latch & 0x1F)
            if self.strikeflag and self.bus.get_cycles() >= self.strike_cycle:
                value |= STAT_STRIKE
            self.stat &= ~STAT_VBLANK & 0xFF
            self.flipflop = 0
            return value

        if register == PPU_VDATA:
            value = self.latch = self.vdata_latch
            if self.enabled() and not self.vram_accessible:
                self.vdata_latch = 0xFF
            else:
                addr = self.vaddr
                if addr >= 0x3000:
                    addr -= 0x1000
                self.vdata_latch = self.peek(addr)
            self.vaddr = (self.vaddr + self.vaddr_inc) & 0x3FFF
            return value

        return self.latch

    def write(self, address: int, value: int) -> None:
        """Write a PPU register (mirrored through $3FFF)."""
        value &= 0xFF
        self.latch = value
        register = address & 0x2007

        if register == PPU_CTRL0:
            self.ctrl0 = value
            self.obj_height = 16 if value & CTRL0_OBJ16 else 8
            self.bg_base = 0x1000 if value & CTRL0_BGADDR else 0
            self.obj_base = 0x1000 if value & CTRL0_OBJADDR else 0
            self.vaddr_inc = 32 if value & CTRL0_ADDRINC else 1
            self.tile_nametab = value & CTRL0_NAMETAB
            self.vaddr_latch = (self.vaddr_latch & ~0x0C00) | ((value & 3) << 10)

        elif register == PPU_CTRL1:
            self.ctrl1 = value
            self.obj_on = bool(value & CTRL1_OBJON)
            self.bg_on = bool(value & CTRL1_BGON)
            self.obj_mask = not value & CTRL1_OBJMASK
            self.bg_mask = not value & CTRL1_BGMASK

        elif register == PPU_OAMADDR:
            self.oam_addr = value

        elif register == PPU_OAMDATA:
            self.oam[self.oam_addr] = value
            self.oam_addr = (self.oam_addr + 1) & 0xFF

        elif register == PPU_SCROLL:
            if self.flipflop == 0:
                self.vaddr_latch = (self.vaddr_latch & ~0x001F) | (value >> 3)
                self.tile_xofs = value & 7
            else:
                self.vaddr_latch &= ~0x73E0
                self.vaddr_latch |= (value & 0xF8) << 2
                self.vaddr_latch |= (value & 7) << 12
            self.flipflop ^= 1

        elif register == PPU_VADDR:
            if self.flipflop == 0:
                self.vaddr_latch = (self.vaddr_latch & ~0xFF00) | ((value & 0x3F) << 8)
            else:
                self.vaddr_latch = (self.vaddr_latch & ~0x00FF) | value
                self.vaddr = self.vaddr_latch
            self.flipflop ^= 1

        elif register == PPU_VDATA:
            self._write_vdata(value)

    def _write_vdata(self, value: int) -> None:
        if self.vaddr < 0x3F00:
            if self.enabled() and not self.vram_accessible:
                self.poke(self.vaddr, 0xFF)
            else:
                addr = self.vaddr
                if not self.vram_present and addr >= 0x3000:
                    self.vaddr -= 0x1000
                self.poke(addr, value)
        elif (self.vaddr & 0x0F) == 0:
            for index in range(8):
                self.palette[index << 2] = (value & 0x3F) | BG_TRANS
        elif self.vaddr & 3:
            self.palette[self.vaddr & 0x1F] = value & 0x3F

        self.vaddr = (self.vaddr + self.vaddr_inc) & 0x3FFF
import pytest

from nesemu.input import InputDevice, InputSystem, InputType, PadButton
from nesemu.ppu import (
    PPU_CTRL0,
    PPU_CTRL1,
    PPU_JOY0,
    PPU_JOY1,
    PPU_OAMADDR,
    PPU_OAMDATA,
    PPU_OAMDMA,
    PPU_SCROLL,
    PPU_STAT,
    PPU_VADDR,
    PPU_VDATA,
    STAT_STRIKE,
    STAT_VBLANK,
    CpuBus,
    Ppu,
    build_palette,
)


@pytest.fixture
def bus():
    return CpuBus()


@pytest.fixture
def inputs():
    return InputSystem()


@pytest.fixture
def ppu(bus, inputs):
    p = Ppu(bus, inputs)
    p.reset(False)
    p.mirror(0, 0, 1, 1)
    p.write(PPU_CTRL0, 0)
    return p


def _set_vaddr(ppu, addr):
    ppu.write(PPU_VADDR, addr >> 8)
    ppu.write(PPU_VADDR, addr & 0xFF)


def test_reset_registers(bus, inputs):
    p = Ppu(bus, inputs)
    p.reset(True)
    assert p.vaddr == 0x2000
    assert p.vaddr_latch == 0x2000
    assert p.ctrl1 == 0x18
    assert p.vram_accessible is True


def test_ctrl0_decodes_flags(ppu):
    ppu.write(PPU_CTRL0, 0x3C | 0x02)
    assert ppu.obj_height == 16
    assert ppu.bg_base == 0x1000
    assert ppu.obj_base == 0x1000
    assert ppu.vaddr_inc == 32
    assert ppu.tile_nametab == 2
    assert ppu.vaddr_latch & 0x0C00 == 2 << 10


def test_ctrl1_decodes_flags(ppu):
    ppu.write(PPU_CTRL1, 0x18)
    assert ppu.bg_on and ppu.obj_on
    assert ppu.bg_mask and ppu.obj_mask
    assert ppu.enabled()
    ppu.write(PPU_CTRL1, 0x06)
    assert not ppu.enabled()
    assert not ppu.bg_mask and not ppu.obj_mask


def test_vram_write_then_buffered_read(ppu):
    _set_vaddr(ppu, 0x2005)
    ppu.write(PPU_VDATA, 0xAB)
    assert ppu.nametab[5] == 0xAB
    assert ppu.vaddr == 0x2006
    _set_vaddr(ppu, 0x2005)
    ppu.read(PPU_VDATA)
    assert ppu.read(PPU_VDATA) == 0xAB


def test_mirroring_views(ppu):
    ppu.poke(0x2010, 0x55)
    assert ppu.peek(0x2410) == 0x55
    assert ppu.peek(0x3010) == 0x55
    ppu.poke(0x2810, 0x66)
    assert ppu.nametab[0x410] == 0x66
    assert ppu.peek(0x2C10) == 0x66


def test_unmapped_page_raises(ppu):
    with pytest.raises(LookupError):
        ppu.peek(0x0000)


def test_set_page_fall_through(ppu):
    chr_ram = bytearray(0x2000)
    ppu.set_page(4, 0, chr_ram, 0)
    assert all(ppu.get_page(n) == (chr_ram, 0) for n in range(4))
    assert ppu.get_page(4) is None
    ppu.poke(0x0123, 9)
    assert chr_ram[0x123] == 9


def test_palette_backdrop_write(ppu):
    _set_vaddr(ppu, 0x3F00)
    ppu.write(PPU_VDATA, 0x0F)
    assert all(ppu.palette[i << 2] == 0x0F | 0x80 for i in range(8))
    ppu.write(PPU_VDATA, 0x21)
    assert ppu.palette[1] == 0x21


def test_stat_read_clears_vblank_and_flipflop(ppu):
    ppu.stat |= STAT_VBLANK
    ppu.write(PPU_SCROLL, 0)
    assert ppu.flipflop == 1
    value = ppu.read(PPU_STAT)
    assert value & STAT_VBLANK
    assert not ppu.stat & STAT_VBLANK
    assert ppu.flipflop == 0


def test_strike_reported_after_cycle(ppu, bus):
    bus.cycles = 10
    ppu.set_strike(9)
    assert ppu.strike_cycle == 13
    assert not ppu.read(PPU_STAT) & STAT_STRIKE
    bus.cycles = 13
    assert ppu.read(PPU_STAT) & STAT_STRIKE
    ppu.set_strike(90)
    assert ppu.strike_cycle == 13


def test_oam_data_writes_increment(ppu):
    ppu.write(PPU_OAMADDR, 0x10)
    ppu.write(PPU_OAMDATA, 7)
    ppu.write(PPU_OAMDATA, 8)
    assert ppu.oam[0x10:0x12] == bytes([7, 8])
    assert ppu.oam_addr == 0x12


def test_oam_dma_even(ppu, bus):
    bus.memory[0x200:0x300] = bytes(range(256))
    ppu.write_high(PPU_OAMDMA, 2)
    assert ppu.oam == bytearray(range(256))
    assert bus.cycles == 513
    assert bus.release_count == 1


def test_oam_dma_odd_start(ppu, bus):
    bus.memory[0x300:0x400] = bytes(range(256))
    ppu.write(PPU_OAMADDR, 4)
    ppu.write_high(PPU_OAMDMA, 3)
    assert list(ppu.oam[4:8]) == [0, 1, 2, 3]
    assert list(ppu.oam[0:4]) == [252, 253, 254, 255]
    assert ppu.oam[8] == 4


def test_joypad_strobe_and_reads(ppu, inputs):
    pad = InputDevice(InputType.JOYPAD0)
    inputs.register(pad)
    pad.event(1, PadButton.A | PadButton.START)
    ppu.write_high(PPU_JOY0, 1)
    ppu.write_high(PPU_JOY0, 0)
    reads = [ppu.read_high(PPU_JOY0) & 1 for _ in range(8)]
    assert reads == [1, 0, 0, 1, 0, 0, 0, 0]
    assert ppu.read_high(0x4015) == 0xFF


def test_vromswitch_and_fiq(ppu, bus):
    seen = []
    ppu.vromswitch = seen.append
    ppu.write_high(PPU_JOY0, 0x05)
    ppu.write_high(PPU_JOY1, 0x40)
    assert seen == [0x05]
    assert bus.fiq == 0x40


def test_end_scanline_increments_fine_y(ppu):
    ppu.write(PPU_CTRL1, 0x08)
    ppu.vaddr = 0x2000
    ppu.end_scanline(0)
    assert ppu.vaddr == 0x3000
    ppu.vaddr = 0x7000 | (29 << 5)
    ppu.end_scanline(1)
    assert ppu.vaddr == 0x0800
    ppu.vaddr = 0x2000
    ppu.end_scanline(240)
    assert ppu.vaddr == 0x2000


def test_check_nmi(ppu, bus):
    ppu.check_nmi()
    assert bus.nmi_count == 0
    ppu.write(PPU_CTRL0, 0x80)
    ppu.check_nmi()
    assert bus.nmi_count == 1


def test_build_palette_layout():
    nes = [(i, i, i) for i in range(64)]
    gui = [(255, 0, 0), (0, 255, 0)]
    pal = build_palette(nes, gui)
    assert len(pal) == 256
    assert pal[5] == pal[69] == pal[133] == (5, 5, 5)
    assert pal[192:194] == gui
    assert pal[255] == (0, 0, 0)


def test_build_palette_too_short():
    with pytest.raises(ValueError):
        build_palette([(0, 0, 0)] * 10)


def test_set_palette_notifies(ppu):
    got = []
    ppu.palette_listener = got.append
    nes = [(i, 0, 0) for i in range(64)]
    ppu.set_palette(nes)
    assert got == [ppu.curpal]
    assert ppu.curpal[64] == (0, 0, 0)
    assert ppu.curpal[65] == (1, 0, 0)


def test_register_mirrors(ppu):
    ppu.write(0x3FF8 | (PPU_CTRL1 & 7), 0x10)
    assert ppu.obj_on
    assert ppu.read(0x2000) == ppu.latch
    assert ppu.read(PPU_CTRL0) == 0x10
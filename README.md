# nesemu

Building blocks for a Nintendo Entertainment System emulator, written in
plain Python with no third-party dependencies.

## What is inside

- `nesemu.input`: the emulated input ports. `InputSystem` holds registered
  `InputDevice`s (joypads, zapper, power pad, Arkanoid paddle, VS DIP
  switches, named by `InputType`) and reads them out one serial bit at a
  time; `strobe()` restarts the reads. `PadButton` names the pad bits and
  `InputState.MAKE` / `InputState.BREAK` press and release them. Pressing
  up and down (or left and right) together reads as neither.
- `nesemu.controller`: an active-low 16-bit controller word. `Button`
  names its bits, `is_pressed` and the `is_any_*_pressed` helpers test it,
  and `Controller.read` builds the word from joystick axes, two fire
  buttons and an optional touch x coordinate.
- `nesemu.ppu`: the picture processing unit's register file. `Ppu`
  handles reads and writes of $2000-$2007 (mirrored up to $3FFF), OAM DMA,
  joypad strobe and frame IRQ writes at $4014/$4016/$4017, the 1 kB page
  map of PPU memory (`set_page`, `get_page`, `peek`, `poke`), nametable
  mirroring (`mirror`, `mirror_high_pages`), the end-of-line VRAM address
  update (`end_scanline`), sprite 0 hit timing (`set_strike`), NMI
  (`check_nmi`) and the display palette (`set_palette`, `build_palette`).
  `CpuBus` is a simple CPU side for it: a 64 kB memory, a cycle counter
  and counters for NMIs and released timeslices.
- `nesemu.video`: `Bitmap` (8-bit indexed image with a pitch), `Rect`,
  `VideoDriver` (the callbacks a display back end supplies) and `Video`,
  which owns a primary buffer, blits bitmaps onto it with clipping and
  flushes it, centred, onto the driver's surface or through the driver's
  `custom_blit`. A driver whose `init` raises makes `Video` raise
  `VideoError`.
- `nesemu.pcx`: 256-colour RLE PCX snapshots of a `Bitmap`
  (`encode_pcx`, `write_pcx`).
- `nesemu.rom`: iNES images. `parse_header` reads the 16-byte header
  (mirroring, battery, trainer, four-screen, mapper number, with the
  "DiskDude!" dirty-header case), `load_rom` slices trainer, PRG-ROM and
  CHR-ROM out of the image (or allocates 8 kB of VRAM when there is no
  CHR-ROM) and loads battery RAM, `check_magic` tests a file for the
  `NES\x1A` signature, and `load_palette_file` reads a 64-colour RGB
  palette. `RomInfo.describe()` gives a one-line summary;
  `save_sram()` / `load_sram()` keep battery RAM in a `.sav` file beside
  the image. Bad or truncated images and unsupported mappers raise
  `RomError`.

## Installing

```
pip install .
```

For running the tests:

```
pip install .[test]
pytest
```

## Example

```python
from nesemu.input import InputDevice, InputState, InputSystem, InputType, PadButton

inputs = InputSystem()
pad = InputDevice(InputType.JOYPAD0)
inputs.register(pad)

pad.event(InputState.MAKE, PadButton.A)
inputs.strobe()
first_bit = inputs.get(InputType.JOYPAD0)   # 0x41: A is held
```

Wiring the PPU to a CPU side and the input ports:

```python
from nesemu.ppu import CpuBus, Ppu

ppu = Ppu(CpuBus(), inputs)
ppu.mirror(0, 0, 1, 1)          # horizontal mirroring
ppu.reset(hard=False)
ppu.write(0x2006, 0x20)
ppu.write(0x2006, 0x00)
ppu.write(0x2007, 0x42)         # stored in the first nametable
```

Loading a cartridge image:

```python
from pathlib import Path
from nesemu.rom import load_rom

data = Path("game.nes").read_bytes()
info = load_rom(data, "game.nes", lambda mapper: mapper in {0, 1, 2})
print(info.describe())
```

## What it does not do

This package is a set of parts, not a runnable emulator:

- `Ppu` keeps the registers, memory and VRAM address in step but does
  not draw background or sprite pixels into a scanline; there is no
  pattern-table or sprite-memory viewer.
- There is no CPU, no sound (neither the console's own channels nor
  cartridge expansion sound) and no mapper logic; `load_rom` only asks a
  callable whether a mapper number is supported.
- There is no display window, no audio output and no command-line
  program; `Video` draws into whatever surface a `VideoDriver` supplies.
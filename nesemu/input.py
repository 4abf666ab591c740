"""Emulated NES input ports: joypads, zapper, power pad, arkanoid paddle and VS DIP switches."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum, IntFlag

MAX_CONTROLLERS = 32

# Zapper status bits
ZAPPER_HIT = 0x00
ZAPPER_MISS = 0x08
ZAPPER_TRIG = 0x10

# Power pad buttons: upper byte is returned in D4, lower byte in D3
POWERPAD_BUTTONS = (
    0x0002, 0x0001, 0x0200, 0x0100,
    0x0004, 0x0010, 0x0080, 0x0800,
    0x0008, 0x0020, 0x0040, 0x0400,
)


class InputType(IntFlag):
    """Kinds of input device; values may be combined when reading."""

    JOYPAD0 = 0x0001
    JOYPAD1 = 0x0002
    ZAPPER = 0x0004
    POWERPAD = 0x0008
    ARKANOID = 0x0010
    VSDIPSW0 = 0x0020
    VSDIPSW1 = 0x0040


class PadButton(IntFlag):
    """Standard control pad button bits."""

    A = 0x01
    B = 0x02
    SELECT = 0x04
    START = 0x08
    UP = 0x10
    DOWN = 0x20
    LEFT = 0x40
    RIGHT = 0x80


class InputState(IntEnum):
    """Whether a button was released (break) or pressed (make)."""

    BREAK = 0
    MAKE = 1


@dataclass
class InputDevice:
    """One input source of a given type holding its current button bits."""

    type: int
    data: int = 0

    def event(self, state: int, value: int) -> None:
        """Set the bits of ``value`` on make, clear them on break."""
        if state == InputState.MAKE:
            self.data |= value
        else:
            self.data &= ~value


def _mask_conflicts(value: int) -> int:
    if value & PadButton.UP and value & PadButton.DOWN:
        value &= ~(PadButton.UP | PadButton.DOWN)
    if value & PadButton.LEFT and value & PadButton.RIGHT:
        value &= ~(PadButton.LEFT | PadButton.RIGHT)
    return value


class InputSystem:
    """Registry of input devices and the serial read state of the input ports."""

    def __init__(self) -> None:
        self.devices: list[InputDevice] = []
        self._pad0_reads = 0
        self._pad1_reads = 0
        self._ppad_reads = 0
        self._ark_reads = 0

    def register(self, device: InputDevice | None) -> None:
        """Add a device; ``None`` is ignored."""
        if device is None:
            return
        if len(self.devices) >= MAX_CONTROLLERS:
            raise OverflowError(f"at most {MAX_CONTROLLERS} input devices can be registered")
        self.devices.append(device)

    def strobe(self) -> None:
        """Reset the serial read counters of every port."""
        self._pad0_reads = 0
        self._pad1_reads = 0
        self._ppad_reads = 0
        self._ark_reads = 0

    def _retrieve(self, kind: int) -> int:
        value = 0
        for device in self.devices:
            if device.type == kind:
                value |= device.data
        return value

    def _pad(self, kind: int, reads: int) -> int:
        value = _mask_conflicts(self._retrieve(kind) & 0xFF)
        # bit 6 is always set due to bus conflicts
        return 0x40 | ((value >> reads) & 1)

    def _pad0(self) -> int:
        result = self._pad(InputType.JOYPAD0, self._pad0_reads)
        self._pad0_reads += 1
        return result

    def _pad1(self) -> int:
        result = self._pad(InputType.JOYPAD1, self._pad1_reads)
        self._pad1_reads += 1
        return result

    def _powerpad(self) -> int:
        value = self._retrieve(InputType.POWERPAD)
        result = 0
        if ((value >> 8) >> self._ppad_reads) & 1:
            result |= 0x10
        if ((value & 0xFF) >> self._ppad_reads) & 1:
            result |= 0x08
        self._ppad_reads += 1
        return result

    def _arkanoid(self) -> int:
        value = self._retrieve(InputType.ARKANOID) & 0xFF
        shift = 7 - self._ark_reads
        self._ark_reads += 1
        if shift < 0:
            return 0
        return 0x02 if (value >> shift) & 1 else 0

    def get(self, types: int) -> int:
        """Read one byte from every port named in ``types`` and OR the results."""
        value = 0
        if types & InputType.JOYPAD0:
            value |= self._pad0()
        if types & InputType.JOYPAD1:
            value |= self._pad1()
        if types & InputType.ZAPPER:
            value |= self._retrieve(InputType.ZAPPER) & 0xFF
        if types & InputType.POWERPAD:
            value |= self._powerpad()
        if types & InputType.VSDIPSW0:
            value |= self._retrieve(InputType.VSDIPSW0) & 0xFF
        if types & InputType.VSDIPSW1:
            value |= self._retrieve(InputType.VSDIPSW1) & 0xFF
        if types & InputType.ARKANOID:
            value |= self._arkanoid()
        return value & 0xFF
"""Game controller with PSX-style active-low button word, fed from joystick, buttons and touch."""

from __future__ import annotations

from enum import IntFlag

MAX_TURBO = 6
TURBO_COUNTER_RESET = 210
_AXIS_THRESHOLD = 500


class Button(IntFlag):
    """Bits of the controller word; a cleared bit means the button is pressed."""

    SELECT = 1
    START = 1 << 3
    UP = 1 << 4
    RIGHT = 1 << 5
    DOWN = 1 << 6
    LEFT = 1 << 7
    L2 = 1 << 8
    R2 = 1 << 9
    L1 = 1 << 10
    R1 = 1 << 11
    TRIANGLE = 1 << 12
    CIRCLE = 1 << 13
    X = 1 << 14
    SQUARE = 1 << 15
    A = CIRCLE
    B = X
    TURBO_A = TRIANGLE
    TURBO_B = SQUARE
    MENU = L1
    POWER = R1


def is_pressed(ctl: int, button: int) -> bool:
    """True if ``button`` is held in the active-low word ``ctl``."""
    return not (ctl & button)


def is_any_direction_pressed(ctl: int) -> bool:
    return any(is_pressed(ctl, b) for b in (Button.UP, Button.DOWN, Button.LEFT, Button.RIGHT))


def is_any_action_pressed(ctl: int) -> bool:
    return any(is_pressed(ctl, b) for b in (Button.START, Button.SELECT, Button.MENU, Button.POWER))


def is_any_fire_pressed(ctl: int) -> bool:
    return any(is_pressed(ctl, b) for b in (Button.A, Button.B, Button.TURBO_A, Button.TURBO_B))


def is_any_pressed(ctl: int) -> bool:
    return is_any_direction_pressed(ctl) or is_any_action_pressed(ctl) or is_any_fire_pressed(ctl)


class Controller:
    """Turns raw joystick, button and touch readings into a controller word."""

    def __init__(self) -> None:
        self.inp_delay = 0
        self.bright = 2
        self.show_menu = False
        self.shutdown = False
        self.turbo_a_speed = 3
        self.turbo_b_speed = 3

    def volume(self) -> int:
        """Output volume; fixed at the maximum."""
        return 4

    def read(
        self,
        x_axis: int,
        y_axis: int,
        button_a: bool,
        button_b: bool,
        touch_x: int | None = None,
    ) -> int:
        """Return the active-low 16-bit word for the given readings.

        ``touch_x`` is the x coordinate of a touch, or ``None`` if the panel is not touched.
        """
        if self.inp_delay > 0:
            self.inp_delay -= 1

        pressed = Button(0)
        if x_axis > _AXIS_THRESHOLD:
            pressed |= Button.RIGHT
        if x_axis < -_AXIS_THRESHOLD:
            pressed |= Button.LEFT
        if y_axis < -_AXIS_THRESHOLD:
            pressed |= Button.UP
        if y_axis > _AXIS_THRESHOLD:
            pressed |= Button.DOWN
        if button_a:
            pressed |= Button.A
        if button_b:
            pressed |= Button.B
        if touch_x is not None:
            if 320 < touch_x < 480:
                pressed |= Button.SELECT
            elif 0 < touch_x < 80:
                pressed |= Button.START

        return 0xFFFF & ~int(pressed)
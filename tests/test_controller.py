import pytest

from nesemu.controller import (
    Button,
    Controller,
    is_any_action_pressed,
    is_any_direction_pressed,
    is_any_fire_pressed,
    is_any_pressed,
    is_pressed,
)

ALL_BUTTONS = [
    Button.SELECT, Button.START, Button.UP, Button.RIGHT, Button.DOWN, Button.LEFT,
    Button.L2, Button.R2, Button.L1, Button.R1,
    Button.TRIANGLE, Button.CIRCLE, Button.X, Button.SQUARE,
]


def _pressed(word):
    return {b for b in ALL_BUTTONS if is_pressed(word, b)}


def test_idle_reads_all_released():
    word = Controller().read(0, 0, False, False)
    assert word == 0xFFFF
    assert not is_any_pressed(word)


@pytest.mark.parametrize(
    "x, y, expected",
    [
        (600, 0, Button.RIGHT),
        (-600, 0, Button.LEFT),
        (0, -600, Button.UP),
        (0, 600, Button.DOWN),
    ],
)
def test_joystick_directions(x, y, expected):
    word = Controller().read(x, y, False, False)
    assert _pressed(word) == {expected}
    assert is_any_direction_pressed(word)
    assert not is_any_fire_pressed(word)


def test_threshold_is_exclusive():
    assert Controller().read(500, -500, False, False) == 0xFFFF


def test_fire_buttons():
    word = Controller().read(0, 0, True, True)
    assert _pressed(word) == {Button.A, Button.B}
    assert is_any_fire_pressed(word)
    assert not is_any_action_pressed(word)


def test_touch_select_and_start():
    controller = Controller()
    select = controller.read(0, 0, False, False, touch_x=400)
    start = controller.read(0, 0, False, False, touch_x=40)
    middle = controller.read(0, 0, False, False, touch_x=200)
    assert _pressed(select) == {Button.SELECT}
    assert _pressed(start) == {Button.START}
    assert middle == 0xFFFF
    assert is_any_action_pressed(select)


def test_pressed_bits_are_cleared():
    word = Controller().read(600, 600, True, False)
    assert word | Button.RIGHT | Button.DOWN | Button.A == 0xFFFF
    assert word & (Button.RIGHT | Button.DOWN | Button.A) == 0


def test_input_delay_counts_down():
    controller = Controller()
    controller.inp_delay = 2
    controller.read(0, 0, False, False)
    assert controller.inp_delay == 1
    controller.read(0, 0, False, False)
    controller.read(0, 0, False, False)
    assert controller.inp_delay == 0


def test_defaults():
    controller = Controller()
    assert controller.volume() == 4
    assert controller.turbo_a_speed == 3
    assert controller.turbo_b_speed == 3
    assert controller.show_menu is False


def test_button_aliases():
    assert Button.A == Button.CIRCLE
    assert Button.MENU == Button.L1
    assert is_pressed(0xFFFF & ~Button.CIRCLE, Button.A)
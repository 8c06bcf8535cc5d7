"""Pixel Model — verifies packing of role, offset and flags, and enum names.

Tests:
    - role | offset | flags never cross-talk
    - black/invert/dark flags read back correctly
    - diagnostic string forms of Pixel, PixelRole, Level, Mask, Mode
"""

import pytest

from qr_plan import BLACK, INVERT, Level, Mask, Mode, Pixel, PixelRole


@pytest.mark.parametrize("role", list(PixelRole))
def test_role_offset_and_flags_are_disjoint(role):
    for offset in (0, 1, 7, 14, 17):
        for flags in (0, BLACK, INVERT, BLACK | INVERT):
            pix = role.pixel() | Pixel.from_offset(offset) | flags
            assert pix.role == role
            assert pix.offset == offset
            assert pix.black == bool(flags & BLACK)
            assert pix.invert == bool(flags & INVERT)


def test_union_keeps_pixel_type():
    pix = PixelRole.DATA.pixel() | BLACK
    assert isinstance(pix, Pixel)
    assert isinstance(pix ^ INVERT, Pixel)
    assert isinstance(BLACK | INVERT, Pixel)


def test_role_pixel_is_light_and_not_inverted():
    pix = PixelRole.TIMING.pixel()
    assert not pix.black
    assert not pix.invert
    assert pix.offset == 0


def test_dark_xors_invert_for_data_and_check():
    assert (PixelRole.DATA.pixel() | INVERT).dark
    assert not (PixelRole.DATA.pixel() | BLACK | INVERT).dark
    assert (PixelRole.CHECK.pixel() | BLACK).dark


def test_dark_ignores_invert_for_function_pixels():
    assert (PixelRole.FORMAT.pixel() | BLACK | INVERT).dark
    assert not (PixelRole.FORMAT.pixel() | INVERT).dark
    assert (PixelRole.POSITION.pixel() | BLACK).dark


def test_pixel_string_form():
    pix = PixelRole.FORMAT.pixel() | Pixel.from_offset(3) | BLACK | INVERT
    assert str(pix) == "format+black+invert+3"
    assert str(PixelRole.DATA.pixel()) == "data+0"
    assert repr(PixelRole.DARK.pixel() | BLACK) == "Pixel(dark+black+0)"


def test_role_names():
    assert [str(r) for r in PixelRole] == [
        "none", "position", "alignment", "timing", "format",
        "data", "check", "version", "dark",
    ]


def test_level_order_and_names():
    assert list(Level) == [Level.L, Level.M, Level.Q, Level.H]
    assert "".join(str(level) for level in Level) == "LMQH"


def test_mask_names():
    assert len(Mask) == 8
    assert str(Mask(5)) == "5"


def test_mode_values_and_names():
    assert [int(m) for m in Mode] == [1, 2, 4]
    assert str(Mode.NUMERIC) == "numeric"
    assert str(Mode.ALPHANUMERIC) == "alpha"
    assert str(Mode.EIGHT_BIT) == "8bit"

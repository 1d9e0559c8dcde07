import random

import pytest

from composer.colors import Color
from composer.style import (
    FONT_CHOICES, THAI_FONT_FALLBACK, StylePicker, TextStyle,
    build_font_stack, merge_style
)
from composer.tone import ImageTone


@pytest.fixture
def dark_tone():
    return ImageTone(average=Color(20, 30, 40), accent=Color(200, 50, 50), is_dark=True)


@pytest.fixture
def light_tone():
    return ImageTone(average=Color(200, 200, 200), accent=Color(250, 240, 10), is_dark=False)


def test_text_style_clamps_size():
    assert TextStyle(size=10).size == 34
    assert TextStyle(size=500).size == 120
    assert TextStyle(size=54).size == 54


def test_font_stack_puts_primary_first():
    stack = build_font_stack("Kanit")

    assert stack[0] == "Kanit"
    assert stack.count("Kanit") == 1
    assert stack[-1] == "sans-serif"
    assert build_font_stack(None) == THAI_FONT_FALLBACK


def test_dark_tone_brightens_fill(dark_tone):
    derived = StylePicker(random.Random(1)).derive(dark_tone)

    assert derived.fill == "#555f69"
    assert derived.stroke == "#a00a0a"
    assert derived.shadow_color == "rgba(0,0,0,0.55)"
    assert derived.stroke_width == 3.6


def test_light_tone_darkens_fill(light_tone):
    derived = StylePicker(random.Random(1)).derive(light_tone)

    assert derived.fill == "#787878"
    assert derived.stroke == "#ffff3c"
    assert derived.shadow_color == "rgba(0,0,0,0.38)"
    assert derived.stroke_width == 3.2


def test_derived_values_in_range(dark_tone):
    for seed in range(20):
        derived = StylePicker(random.Random(seed)).derive(dark_tone)

        assert 50 <= derived.size <= 60
        assert 78 <= derived.padding_y <= 96
        assert 1.18 <= derived.line_height <= 1.25
        assert derived.font_family[0] in FONT_CHOICES


def test_same_seed_same_style(dark_tone):
    a = StylePicker(random.Random(42)).derive(dark_tone)
    b = StylePicker(random.Random(42)).derive(dark_tone)
    assert a == b


def test_seed_changes_size(dark_tone):
    # random.Random(1).random() ~ 0.134, random.Random(2).random() ~ 0.956
    assert StylePicker(random.Random(1)).derive(dark_tone).size == 51
    assert StylePicker(random.Random(2)).derive(dark_tone).size == 60


def test_merge_keeps_weight_and_user_fields(dark_tone):
    current = TextStyle(font_weight=600, padding_x=120)
    derived = StylePicker(random.Random(3)).derive(dark_tone)

    merged = merge_style(current, derived)

    assert merged.font_weight == 600
    assert merged.padding_x == 120
    assert merged.fill == derived.fill
    assert merged.size == derived.size
    assert merged.font_family == derived.font_family


def test_merge_respects_pinned_family(dark_tone):
    current = TextStyle(font_family=build_font_stack("Pridi"), font_family_pinned=True)
    derived = StylePicker(random.Random(3)).derive(dark_tone)

    merged = merge_style(current, derived)

    assert merged.font_family[0] == "Pridi"
    assert merged.fill == derived.fill

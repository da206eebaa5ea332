import re

import pytest

from brandkit.workflows.color_utils import (
    custom_property_colors,
    extract_colors,
    iter_color_tokens,
    normalize_color,
    rgb_to_hex,
)


@pytest.mark.parametrize(
    "token, expected",
    [
        ("#abc", "#aabbcc"),
        ("#ABCDEF", "#abcdef"),
        ("rgb(0,123,255)", "#007bff"),
        ("RGB( 255 , 0 , 0 )", "#ff0000"),
        ("rgba(0, 0, 0, 0.5)", "rgba(0, 0, 0, 0.5)"),
        ("  HSL(120, 50%, 50%) ", "hsl(120, 50%, 50%)"),
    ],
)
def test_normalize_color_canonical_forms(token, expected):
    assert normalize_color(token) == expected


@pytest.mark.parametrize("token", ["", "   ", "blue", "#abcd", "transparent", "var(--brand)"])
def test_normalize_color_rejects_non_colors(token):
    assert normalize_color(token) is None


def test_hex_and_rgb_results_are_six_digit_lowercase():
    for token in ("#FFF", "#0a0B0c", "rgb(1, 2, 3)", "rgb(255,255,255)"):
        assert re.fullmatch(r"#[0-9a-f]{6}", normalize_color(token))


def test_out_of_range_channels_are_not_clamped():
    assert rgb_to_hex(999, 0, 0) == "#3e70000"
    assert normalize_color("rgb(999,0,0)") == "#3e70000"


def test_iter_color_tokens_document_order():
    css = "a { color: #F00; border-color: rgba(1,2,3,0.4); } b { color: hsl(10, 20%, 30%) }"
    assert list(iter_color_tokens(css)) == ["#ff0000", "rgba(1,2,3,0.4)", "hsl(10, 20%, 30%)"]


def test_custom_property_triplets_and_tokens():
    css = ":root { --brand-rgb: 12, 34, 56; --accent: #FFF; --bad: 300, 1, 1; --size: 12px; }"
    assert custom_property_colors(css) == ["#0c2238", "#ffffff"]


def test_extract_colors_dedupes_across_forms():
    css = "a{color:#fff} b{color:rgb(255,255,255)} c{color:#FFFFFF}"
    assert extract_colors(css) == ["#ffffff"]


def test_extract_colors_custom_properties_first():
    css = "body { color: #111111; } :root { --primary: #222222; }"
    assert extract_colors(css) == ["#222222", "#111111"]

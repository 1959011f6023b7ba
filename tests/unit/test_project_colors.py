"""Unit tests for the deterministic project color."""

from __future__ import annotations

from taskboard.logic.repository_projects import color_from_name


def test_ascii_names() -> None:
    # h = 97, then 98 + 31 * 97 = 3105
    assert color_from_name("ab") == "#000C21"
    assert color_from_name("") == "#000000"


def test_hash_runs_over_utf16_code_units() -> None:
    # U+1F600 is the surrogate pair D83D DE00: 0xDE00 + 31 * 0xD83D = 1772899
    assert color_from_name("\U0001F600") == "#1B0D63"
    assert color_from_name("a\U0001F600") == "#1C7984"


def test_long_names_wrap_to_32_bits_and_stay_stable() -> None:
    name = "Quarterly infrastructure migration " * 4
    color = color_from_name(name)
    assert color == color_from_name(name)
    assert len(color) == 7 and color.startswith("#")
    assert color[1:] == color[1:].upper()

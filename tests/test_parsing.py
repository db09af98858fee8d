"""Unit tests for the text input parsers."""

import pytest

from xiaop.parsing import parse_bead_road, parse_cards, parse_outcome, parse_road_color
from xiaop.predictor import BANKER, BLUE, PLAYER, RED, TIE


def test_bead_road_letters_case_insensitive():
    assert parse_bead_road("b P t x Q B") == (BANKER, PLAYER, TIE, BANKER)


def test_bead_road_chinese_and_fullwidth():
    assert parse_bead_road("莊　閒 和 Ｂ") == (BANKER, PLAYER, TIE, BANKER)


def test_bead_road_empty():
    assert parse_bead_road("") == ()
    assert parse_bead_road(None) == ()
    assert parse_bead_road("hello world") == ()


def test_cards_drop_non_numeric():
    assert parse_cards("4 6 x 7.5 K") == (4, 6, 13)


def test_cards_fullwidth_digits():
    assert parse_cards("４ １０") == (4, 10)


@pytest.mark.parametrize("value, expected", [
    ("red", (RED,)),
    ("RED", (RED,)),
    ("紅", (RED,)),
    ("Blue", (BLUE,)),
    ("none", ()),
    ("", ()),
    (None, ()),
])
def test_road_color_selection(value, expected):
    assert parse_road_color(value) == expected


def test_outcome_single_token():
    assert parse_outcome("閒") == PLAYER
    assert parse_outcome(" b ") == BANKER
    assert parse_outcome("BP") is None

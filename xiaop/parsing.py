# -*- coding: utf-8 -*-
"""
輸入文字解析（珠盤路 / 牌面 / 下三路選擇）
不合法的 token 直接丟掉，不丟例外。
"""
from __future__ import annotations

import re
from typing import Any, List, Optional, Tuple

from xiaop.predictor import BANKER, BLUE, PLAYER, RED, TIE

_FULLWIDTH = str.maketrans("０１２３４５６７８９ＢＰＴｂｐｔ：", "0123456789BPTbpt:")
_INVISIBLE = re.compile(r"[\u200b-\u200f\u202a-\u202e\u2060-\u206f\ufeff]")

_OUTCOME_TOKENS = {
    "B": BANKER, "莊": BANKER, "庄": BANKER, "BANKER": BANKER,
    "P": PLAYER, "閒": PLAYER, "闲": PLAYER, "PLAYER": PLAYER,
    "T": TIE, "和": TIE, "TIE": TIE,
}

_RANK_LETTERS = {"A": 1, "J": 11, "Q": 12, "K": 13}

_COLOR_TOKENS = {
    "RED": RED, "R": RED, "紅": RED, "红": RED,
    "BLUE": BLUE, "藍": BLUE, "蓝": BLUE,
}


def _clean(text: Any) -> str:
    if text is None:
        return ""
    s = str(text).translate(_FULLWIDTH)
    s = _INVISIBLE.sub("", s).replace("\u3000", " ")
    return s.strip()


def _tokens(text: Any) -> List[str]:
    return _clean(text).upper().split()


def parse_bead_road(text: Any) -> Tuple[str, ...]:
    """'B p T b' -> (BANKER, PLAYER, TIE, BANKER)"""
    return tuple(_OUTCOME_TOKENS[t] for t in _tokens(text) if t in _OUTCOME_TOKENS)


def parse_outcome(text: Any) -> Optional[str]:
    t = _clean(text).upper()
    return _OUTCOME_TOKENS.get(t)


def parse_cards(text: Any) -> Tuple[int, ...]:
    """'4 6 k x' -> (4, 6, 13)；非數字 token 丟掉"""
    out: List[int] = []
    for t in _tokens(text):
        if re.fullmatch(r"\d+", t):
            out.append(int(t))
        elif t in _RANK_LETTERS:
            out.append(_RANK_LETTERS[t])
    return tuple(out)


def parse_road_color(value: Any) -> Tuple[str, ...]:
    """單選：red / blue / none → 長度 0 或 1 的序列"""
    t = _clean(value).upper()
    color = _COLOR_TOKENS.get(t)
    return (color,) if color else ()

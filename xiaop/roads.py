# -*- coding: utf-8 -*-
"""
大路 & 下三路（大眼仔 / 小路 / 曱甴路）
由珠盤路推算，供未手動選擇下三路時使用。
"""
from __future__ import annotations

from typing import Any, List, Sequence, Tuple

from xiaop.predictor import BANKER, BLUE, PLAYER, RED, DownRoad

ROAD_OFFSETS = {"big_eye": 1, "small_road": 2, "cockroach": 3}


def bp_only(seq: Sequence[Any]) -> List[str]:
    return [x for x in seq if x in (BANKER, PLAYER)]


def big_road_columns(bead_road: Sequence[Any]) -> List[List[str]]:
    """
    邏輯大路（不處理長龍轉彎）：
    - 同色往下疊在同一欄
    - 換色開新欄
    和局不佔位。
    """
    cols: List[List[str]] = []
    for ch in bp_only(bead_road):
        if cols and cols[-1][-1] == ch:
            cols[-1].append(ch)
        else:
            cols.append([ch])
    return cols


def derived_road(columns: List[List[str]], offset: int) -> Tuple[str, ...]:
    """
    offset=1 大眼仔, 2 小路, 3 曱甴路
    - 欄首 (row 0)：比較前一欄與前 (1+offset) 欄長度，齊腳紅、不齊藍
    - 其餘 (row>=1)：看左邊第 offset 欄同一列；有→紅，剛好空在此列→藍，更早就空（直落）→紅
    """
    if offset < 1:
        raise ValueError("offset must be >= 1")
    out: List[str] = []
    for c, col in enumerate(columns):
        for r in range(len(col)):
            if r == 0:
                if c < offset + 1:
                    continue
                same = len(columns[c-1]) == len(columns[c-1-offset])
                out.append(RED if same else BLUE)
            else:
                if c < offset:
                    continue
                ref = len(columns[c-offset])
                out.append(BLUE if ref == r else RED)
    return tuple(out)


def down_roads(bead_road: Sequence[Any]) -> DownRoad:
    cols = big_road_columns(bead_road)
    return DownRoad(**{name: derived_road(cols, k) for name, k in ROAD_OFFSETS.items()})

# -*- coding: utf-8 -*-
"""
百家樂點數工具
 - 10/J/Q/K 一律算 0 點
 - 總和只取個位數（mod 10）
"""
from __future__ import annotations

import math
import numbers
from typing import Any, Iterable, List

import numpy as np

TEN_POINT_RANK = 10  # >= 10 的牌面（10/J/Q/K）視為 0 點


def _as_rank(x: Any) -> float | None:
    """轉成數值牌面；非數字（含 bool、NaN/inf、無法解析的字串）回傳 None。"""
    if isinstance(x, bool):
        return None
    if isinstance(x, numbers.Real):
        v = float(x)
    elif isinstance(x, str):
        try:
            v = float(x.strip())
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(v):
        return None
    return v


def card_ranks(cards: Iterable[Any]) -> List[float]:
    return [v for v in (_as_rank(c) for c in cards) if v is not None]


def card_points(cards: Iterable[Any]) -> np.ndarray:
    arr = np.asarray(card_ranks(cards), dtype=np.float64)
    return np.where(arr >= TEN_POINT_RANK, 0.0, arr)


def baccarat_point_sum(cards: Iterable[Any]) -> float:
    """
    [10, 10, 10] -> 0
    [7, 8]       -> 5
    截斷式取餘（fmod），負數不會被轉成正數。
    """
    pts = card_points(cards)
    if pts.size == 0:
        return 0.0
    return float(np.fmod(pts.sum(), 10))

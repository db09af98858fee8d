# -*- coding: utf-8 -*-
"""
小P 預測引擎（PredictionEngine）

三種子分數加權：
  1. 型態（珠盤路最近 10 局的莊閒偏向 + 最後一局）
  2. 牌點數（上一局莊/閒點數高低）
  3. 下三路顏色共識（大眼仔、小路、曱甴路的最新顏色）

>0 傾向莊，<0 傾向閒；接近 0 視為低信心，預設閒。
引擎本身無狀態（僅固定權重），任何輸入都不會丟例外。
"""
from __future__ import annotations

import logging
import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple, Union

import numpy as np

from xiaop.points import baccarat_point_sum

log = logging.getLogger("xiaop.predictor")

# ---------- 符號 ----------
BANKER = "BANKER"
PLAYER = "PLAYER"
TIE = "TIE"
RED = "RED"
BLUE = "BLUE"

# ---------- 常數 ----------
PATTERN_WINDOW = 10
LAST_BONUS = 0.1
CARD_LEAN = 0.3
ROAD_STEP = 0.5
ROAD_NORM = 1.5
DECISION_MARGIN = 0.05  # 嚴格不等式：剛好 ±0.05 仍落在中立帶（→ 閒）


@dataclass(frozen=True)
class Weights:
    pattern: float = 0.4
    card_points: float = 0.3
    down_road: float = 0.3

    def __post_init__(self):
        for name in ("pattern", "card_points", "down_road"):
            try:
                v = float(getattr(self, name))
            except (TypeError, ValueError):
                raise ValueError(f"weight {name} must be a number, got {getattr(self, name)!r}")
            if not math.isfinite(v) or v < 0:
                raise ValueError(f"weight {name} must be a non-negative number, got {v!r}")
            object.__setattr__(self, name, v)

    def as_dict(self) -> Dict[str, float]:
        return {"pattern": self.pattern, "cardPoints": self.card_points, "downRoad": self.down_road}


@dataclass(frozen=True)
class DownRoad:
    big_eye: Tuple[str, ...] = ()
    small_road: Tuple[str, ...] = ()
    cockroach: Tuple[str, ...] = ()


@dataclass(frozen=True)
class PredictionInput:
    bead_road: Tuple[str, ...] = ()
    banker_cards: Tuple[Any, ...] = ()
    player_cards: Tuple[Any, ...] = ()
    down_road: DownRoad = field(default_factory=DownRoad)

    @classmethod
    def from_mapping(cls, data: Any) -> "PredictionInput":
        """接受 wire 格式（beadRoad/bankerCards/...）或 snake_case key。"""
        if not isinstance(data, Mapping):
            return cls()
        banker, player = _as_cards(
            _pick(data, "bankerCards", "banker_cards", default=()),
            _pick(data, "playerCards", "player_cards", default=()),
        )
        return cls(
            bead_road=_as_seq(_pick(data, "beadRoad", "bead_road")),
            banker_cards=banker,
            player_cards=player,
            down_road=_as_down_road(_pick(data, "downRoad", "down_road")),
        )


@dataclass(frozen=True)
class RawScores:
    pattern_score: float
    card_score: float
    down_road_score: float
    total_score: float

    def as_dict(self) -> Dict[str, float]:
        return {
            "patternScore": self.pattern_score,
            "cardScore": self.card_score,
            "downRoadScore": self.down_road_score,
            "totalScore": self.total_score,
        }


@dataclass(frozen=True)
class PredictionOutput:
    side: str
    confidence: float
    raw_scores: RawScores

    def to_dict(self) -> Dict[str, Any]:
        return {"side": self.side, "confidence": self.confidence, "rawScores": self.raw_scores.as_dict()}


# ---------- 輸入整理 ----------
def _pick(data: Mapping, *keys: str, default: Any = None) -> Any:
    for k in keys:
        if k in data:
            return data[k]
    return default


def _as_seq(x: Any) -> Tuple[Any, ...]:
    if _is_seq(x):
        try:
            return tuple(x)
        except TypeError:
            return ()
    return ()


def _is_seq(x: Any) -> bool:
    # 字串/bytes 雖然是 Sequence，但不是合法的序列欄位
    return isinstance(x, (Sequence, np.ndarray)) and not isinstance(x, (str, bytes, bytearray))


def _as_cards(banker: Any, player: Any) -> Tuple[Tuple[Any, ...], Tuple[Any, ...]]:
    # 任一邊不是序列 → 牌點數整項不計（兩邊都清空）
    if not (_is_seq(banker) and _is_seq(player)):
        return (), ()
    return _as_seq(banker), _as_seq(player)


def _as_down_road(x: Any) -> DownRoad:
    if isinstance(x, DownRoad):
        return DownRoad(_as_seq(x.big_eye), _as_seq(x.small_road), _as_seq(x.cockroach))
    if not isinstance(x, Mapping):
        return DownRoad()
    return DownRoad(
        big_eye=_as_seq(_pick(x, "bigEye", "big_eye")),
        small_road=_as_seq(_pick(x, "smallRoad", "small_road")),
        cockroach=_as_seq(_pick(x, "cockroach")),
    )


def normalize_input(data: Union[PredictionInput, Mapping, None, Any]) -> PredictionInput:
    """任何缺漏/格式錯誤的欄位都轉為空序列，之後的計分只會看到乾淨的 tuple。"""
    if isinstance(data, PredictionInput):
        banker, player = _as_cards(data.banker_cards, data.player_cards)
        return PredictionInput(
            bead_road=_as_seq(data.bead_road),
            banker_cards=banker,
            player_cards=player,
            down_road=_as_down_road(data.down_road),
        )
    return PredictionInput.from_mapping(data)


# ---------- 子分數 ----------
def _is(x: Any, symbol: str) -> bool:
    return isinstance(x, str) and x == symbol


def evaluate_pattern(bead_road: Sequence) -> float:
    if not bead_road:
        return 0.0
    last = bead_road[-1]
    recent = bead_road[-PATTERN_WINDOW:]
    n_b = sum(1 for r in recent if _is(r, BANKER))
    n_p = sum(1 for r in recent if _is(r, PLAYER))

    bias = 0.0
    if n_b + n_p > 0:
        bias = (n_b - n_p) / (n_b + n_p)

    last_bonus = LAST_BONUS if _is(last, BANKER) else -LAST_BONUS if _is(last, PLAYER) else 0.0
    return bias + last_bonus


def evaluate_card_points(banker_cards: Sequence, player_cards: Sequence) -> float:
    diff = baccarat_point_sum(banker_cards) - baccarat_point_sum(player_cards)
    # 莊點數高 → 下一局偏閒；閒點數高 → 偏莊
    if diff > 0:
        return -CARD_LEAN
    if diff < 0:
        return CARD_LEAN
    return 0.0


def _color_score(color: Any) -> float:
    if _is(color, RED):
        return ROAD_STEP
    if _is(color, BLUE):
        return -ROAD_STEP
    return 0.0


def evaluate_down_road(down_road: DownRoad) -> float:
    # 只看每一路的最後一顆
    score = 0.0
    for road in (down_road.big_eye, down_road.small_road, down_road.cockroach):
        score += _color_score(road[-1] if road else None)
    return score / ROAD_NORM


def score_to_side(total_score: float) -> str:
    if total_score > DECISION_MARGIN:
        return BANKER
    if total_score < -DECISION_MARGIN:
        return PLAYER
    return PLAYER  # 中立帶預設閒


# ---------- 引擎 ----------
class PredictionEngine:
    def __init__(self, weights: Optional[Weights] = None):
        self.weights = weights if weights is not None else Weights()

    def predict_next(self, data: Union[PredictionInput, Mapping, None] = None) -> PredictionOutput:
        inp = normalize_input(data)

        pattern_score = evaluate_pattern(inp.bead_road)
        card_score = evaluate_card_points(inp.banker_cards, inp.player_cards)
        down_road_score = evaluate_down_road(inp.down_road)

        w = self.weights
        total_score = (
            pattern_score * w.pattern
            + card_score * w.card_points
            + down_road_score * w.down_road
        )
        side = score_to_side(total_score)
        confidence = min(1.0, abs(total_score))

        log.debug(
            "predict side=%s conf=%.4f pattern=%.4f card=%.4f down=%.4f total=%.4f",
            side, confidence, pattern_score, card_score, down_road_score, total_score,
        )
        return PredictionOutput(
            side=side,
            confidence=confidence,
            raw_scores=RawScores(pattern_score, card_score, down_road_score, total_score),
        )

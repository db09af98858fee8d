# -*- coding: utf-8 -*-
"""server.py — 小P 百家樂預測 HTTP 服務

- /predict：結構化 JSON（beadRoad/bankerCards/playerCards/downRoad）或文字欄位
  （bead_text / banker_text / player_text / big_eye / small_road / cockroach）
- /demo：內建示範局面
- /record、/reset：每個 UID 一份珠盤路 session（Redis 或記憶體）
- /、/health、/ping：存活檢查

珠盤路為空時不呼叫引擎，直接回 400 提示。
"""

import os, logging, time, json, threading
from typing import Optional, Dict, Any, Tuple

import redis
from flask import Flask, request, jsonify
from flask_cors import CORS

from xiaop.parsing import parse_bead_road, parse_cards, parse_outcome, parse_road_color
from xiaop.predictor import (
    BANKER, PLAYER, DownRoad, PredictionEngine, PredictionInput, PredictionOutput, Weights,
)
from xiaop.roads import down_roads

# ---------- Logging ----------
logging.basicConfig(
    level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO),
    format="%(asctime)s %(levelname)s:%(name)s:%(message)s",
)
log = logging.getLogger("xiaop-server")


def _truthy(val: Any, default: int = 1) -> int:
    if val is None:
        return 1 if default else 0
    v = str(val).strip().lower()
    if v in ("1", "true", "t", "yes", "y", "on"):
        return 1
    if v in ("0", "false", "f", "no", "n", "off"):
        return 0
    try:
        return 1 if int(float(v)) != 0 else 0
    except (ValueError, OverflowError):
        return 1 if default else 0


def env_flag(name: str, default: int = 1) -> int:
    return _truthy(os.getenv(name), default)


# ---------- 設定 ----------
VERSION = "xiaop-web-predictor-1.0"

WEIGHTS = Weights(
    pattern=float(os.getenv("W_PATTERN", "0.4")),
    card_points=float(os.getenv("W_CARD_POINTS", "0.3")),
    down_road=float(os.getenv("W_DOWN_ROAD", "0.3")),
)
DERIVE_DOWN_ROAD = env_flag("DERIVE_DOWN_ROAD", 0)
MAX_BEAD_ROAD = int(os.getenv("MAX_BEAD_ROAD", "200"))
SESSION_EXPIRE_SECONDS = int(os.getenv("SESSION_EXPIRE_SECONDS", "1200"))

SIDE_TEXT = {BANKER: "莊", PLAYER: "閒"}
EMPTY_BEAD_PROMPT = "請先輸入珠盤路（例如：B P B T）"

# 示範局面（上一局莊 4+6、閒 9+1）
DEMO_INPUT = PredictionInput(
    bead_road=(BANKER, PLAYER, BANKER, BANKER, PLAYER, BANKER, BANKER, PLAYER, BANKER, BANKER),
    banker_cards=(4, 6),
    player_cards=(9, 1),
    down_road=DownRoad(
        big_eye=("RED", "RED", "RED", "RED"),
        small_road=("RED", "RED", "BLUE"),
        cockroach=("RED", "RED", "RED"),
    ),
)

engine = PredictionEngine(WEIGHTS)

# ---------- Redis（REDIS_URL 未設定時用記憶體） ----------
REDIS_URL = os.getenv("REDIS_URL")
redis_client: Optional[redis.Redis] = None
if REDIS_URL:
    try:
        redis_client = redis.from_url(REDIS_URL, decode_responses=True)
        log.info("Successfully connected to Redis.")
    except (redis.RedisError, ValueError) as e:
        redis_client = None
        log.error("Failed to connect to Redis: %s. Using in-memory session.", e)
else:
    log.warning("REDIS_URL not set. Using in-memory session store.")

SESS_FALLBACK: Dict[str, Dict[str, Any]] = {}
_uid_locks: Dict[str, threading.Lock] = {}
_uid_locks_guard = threading.Lock()


def _get_uid_lock(uid: str) -> threading.Lock:
    with _uid_locks_guard:
        lk = _uid_locks.get(uid)
        if lk is None:
            lk = threading.Lock()
            _uid_locks[uid] = lk
        return lk


# ---------- 簡易 Session 層 ----------
def _sess_key(uid: str) -> str:
    return f"sess:{uid}"


def _new_session() -> Dict[str, Any]:
    return {"bead_road": [], "rounds_seen": 0, "last_side": None, "updated": int(time.time())}


def get_session(uid: str) -> Dict[str, Any]:
    if not uid:
        uid = "anon"
    if redis_client:
        try:
            raw = redis_client.get(_sess_key(uid))
            if raw:
                return json.loads(raw)
        except (redis.RedisError, ValueError) as e:
            log.warning("get_session error: %s", e)
    sess = SESS_FALLBACK.get(uid)
    if isinstance(sess, dict):
        if int(time.time()) - int(sess.get("updated", 0)) <= SESSION_EXPIRE_SECONDS:
            return sess
        SESS_FALLBACK.pop(uid, None)
    return _new_session()


def _purge_expired(keep: str) -> None:
    """清掉記憶體中過期的 session 與閒置的 UID 鎖。"""
    cutoff = int(time.time()) - SESSION_EXPIRE_SECONDS
    for k in [k for k, s in SESS_FALLBACK.items() if k != keep and int(s.get("updated", 0)) < cutoff]:
        SESS_FALLBACK.pop(k, None)
    with _uid_locks_guard:
        for k in [k for k, lk in _uid_locks.items() if k not in SESS_FALLBACK and not lk.locked()]:
            _uid_locks.pop(k, None)


def save_session(uid: str, sess: Dict[str, Any]) -> None:
    if not uid:
        uid = "anon"
    sess["updated"] = int(time.time())
    if redis_client:
        try:
            redis_client.set(_sess_key(uid), json.dumps(sess, ensure_ascii=False), ex=SESSION_EXPIRE_SECONDS)
            return
        except redis.RedisError as e:
            log.warning("save_session error: %s", e)
    SESS_FALLBACK[uid] = sess
    _purge_expired(keep=uid)


def reset_session(uid: str) -> None:
    if redis_client:
        try:
            redis_client.delete(_sess_key(uid))
        except redis.RedisError as e:
            log.warning("reset_session error: %s", e)
    SESS_FALLBACK.pop(uid, None)


# ---------- 輸入整理 ----------
def build_input(data: Dict[str, Any], derive: Optional[bool] = None) -> PredictionInput:
    """文字欄位優先；沒有文字欄位就當結構化 JSON。"""
    if any(k in data for k in ("bead_text", "banker_text", "player_text")):
        inp = PredictionInput(
            bead_road=parse_bead_road(data.get("bead_text")),
            banker_cards=parse_cards(data.get("banker_text")),
            player_cards=parse_cards(data.get("player_text")),
            down_road=DownRoad(
                big_eye=parse_road_color(data.get("big_eye")),
                small_road=parse_road_color(data.get("small_road")),
                cockroach=parse_road_color(data.get("cockroach")),
            ),
        )
    else:
        inp = PredictionInput.from_mapping(data)

    if derive is None:
        derive = bool(_truthy(data.get("derive"), DERIVE_DOWN_ROAD))
    dr = inp.down_road
    if derive and not (dr.big_eye or dr.small_road or dr.cockroach):
        inp = PredictionInput(inp.bead_road, inp.banker_cards, inp.player_cards, down_roads(inp.bead_road))
    return inp


# ---------- UI 卡片 ----------
def format_output_card(result: PredictionOutput) -> Tuple[str, str]:
    raw = result.raw_scores
    headline = f"小P 建議：{SIDE_TEXT[result.side]}（信心值：{result.confidence * 100:.1f}%）"
    detail = (
        f"詳細分數：型態={raw.pattern_score:.2f}，"
        f"牌點數={raw.card_score:.2f}，"
        f"下三路={raw.down_road_score:.2f}，"
        f"總分={raw.total_score:.2f}"
    )
    return headline, detail


def _result_payload(inp: PredictionInput, result: PredictionOutput) -> Dict[str, Any]:
    headline, detail = format_output_card(result)
    payload = result.to_dict()
    payload.update(
        ok=True,
        sideText=SIDE_TEXT[result.side],
        card="\n".join([headline, detail]),
        downRoad={
            "bigEye": list(inp.down_road.big_eye),
            "smallRoad": list(inp.down_road.small_road),
            "cockroach": list(inp.down_road.cockroach),
        },
    )
    return payload


def run_prediction(inp: PredictionInput) -> Tuple[Dict[str, Any], int]:
    if not inp.bead_road:
        return {"ok": False, "error": EMPTY_BEAD_PROMPT}, 400
    result = engine.predict_next(inp)
    log.info(
        "[PREDICT] side=%s conf=%.3f total=%.4f beads=%d",
        result.side, result.confidence, result.raw_scores.total_score, len(inp.bead_road),
    )
    return _result_payload(inp, result), 200


# ---------- Flask App ----------
app = Flask(__name__)
CORS(app)


def _json_body() -> Dict[str, Any]:
    data = request.get_json(force=True, silent=True)
    return data if isinstance(data, dict) else {}


@app.get("/")
def root():
    return f"✅ 小P Server OK ({VERSION})", 200


@app.get("/health")
def health():
    return jsonify(
        ok=True,
        ts=time.time(),
        version=VERSION,
        weights=WEIGHTS.as_dict(),
        derive_down_road=bool(DERIVE_DOWN_ROAD),
        session_backend=("redis" if redis_client else "memory"),
    ), 200


@app.get("/ping")
def ping():
    return "OK", 200


@app.post("/predict")
def predict():
    try:
        body, status = run_prediction(build_input(_json_body()))
        return jsonify(body), status
    except Exception as e:
        log.exception("predict error: %s", e)
        return jsonify(ok=False, error=str(e)), 500


@app.get("/demo")
def demo():
    body, status = run_prediction(DEMO_INPUT)
    return jsonify(body), status


@app.post("/record")
def record():
    try:
        data = _json_body()
        uid = str(data.get("uid") or "anon")
        outcome = parse_outcome(data.get("outcome"))
        if outcome is None:
            return jsonify(ok=False, error="無法解析結果；請輸入 B / P / T"), 400

        with _get_uid_lock(uid):
            sess = get_session(uid)
            beads = list(sess.get("bead_road") or [])
            beads.append(outcome)
            sess["bead_road"] = beads[-MAX_BEAD_ROAD:]
            sess["rounds_seen"] = int(sess.get("rounds_seen", 0)) + 1

            inp = PredictionInput(
                bead_road=tuple(sess["bead_road"]),
                banker_cards=parse_cards(data.get("banker_text")),
                player_cards=parse_cards(data.get("player_text")),
                down_road=down_roads(sess["bead_road"]),
            )
            body, status = run_prediction(inp)
            sess["last_side"] = body.get("side")
            save_session(uid, sess)

        body["rounds_seen"] = sess["rounds_seen"]
        return jsonify(body), status
    except Exception as e:
        log.exception("record error: %s", e)
        return jsonify(ok=False, error=str(e)), 500


@app.post("/reset")
def reset():
    uid = str(_json_body().get("uid") or "anon")
    with _get_uid_lock(uid):
        reset_session(uid)
    return jsonify(ok=True, uid=uid), 200


if __name__ == "__main__":
    port = int(os.getenv("PORT", "8000"))
    log.info(
        "Starting %s on port %s (W_PATTERN=%.3f, W_CARD_POINTS=%.3f, W_DOWN_ROAD=%.3f, DERIVE=%s, REDIS=%s)",
        VERSION, port, WEIGHTS.pattern, WEIGHTS.card_points, WEIGHTS.down_road,
        DERIVE_DOWN_ROAD, bool(redis_client),
    )
    app.run(host="0.0.0.0", port=port, debug=False)

"""
Pytest configuration and shared fixtures for the 小P predictor tests.
"""

import pytest

from xiaop.predictor import BANKER, PLAYER, PredictionEngine


@pytest.fixture
def engine():
    return PredictionEngine()


@pytest.fixture
def demo_input():
    """The demo hand: 7 banker / 3 player, tied card points, RED/BLUE/RED roads."""
    return {
        "beadRoad": [BANKER, PLAYER, BANKER, BANKER, PLAYER, BANKER, BANKER, PLAYER, BANKER, BANKER],
        "bankerCards": [4, 6],
        "playerCards": [9, 1],
        "downRoad": {
            "bigEye": ["RED", "RED", "RED", "RED"],
            "smallRoad": ["RED", "RED", "BLUE"],
            "cockroach": ["RED", "RED", "RED"],
        },
    }


@pytest.fixture
def client(monkeypatch):
    import server

    monkeypatch.setattr(server, "redis_client", None)
    monkeypatch.setattr(server, "SESS_FALLBACK", {})
    server.app.config["TESTING"] = True
    with server.app.test_client() as c:
        yield c

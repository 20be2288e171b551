"""
Package-level checks: version metadata and the public API of each subpackage.
"""

import re
from pathlib import Path

import kaali_tilli
from kaali_tilli.server import game

SETUP_PY = Path(__file__).resolve().parents[2] / "setup.py"


def test_version_matches_setup():
    declared = re.search(r'version="([^"]+)"', SETUP_PY.read_text(encoding="utf-8")).group(1)
    assert kaali_tilli.__version__ == declared


def test_subpackages_are_exposed():
    for name in ("client", "server", "shared"):
        assert hasattr(kaali_tilli, name)


def test_game_exports_resolve():
    for name in game.__all__:
        assert getattr(game, name) is not None
    assert game.RoomManager.__module__ == "kaali_tilli.server.game.manager"
    assert game.GameRoom.__module__ == "kaali_tilli.server.game.room"

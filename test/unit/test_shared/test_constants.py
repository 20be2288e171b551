"""
Tests for shared constants.
"""

from kaali_tilli.shared.constants import (
    BASE_BID,
    DEFAULT_PORT,
    DEV_NAMES,
    MAX_BID,
    MAX_PLAYERS,
    MIN_PLAYERS,
    REMOVED_TWOS,
    ROOM_CODE_LENGTH,
)


def test_constants():
    assert isinstance(DEFAULT_PORT, int)
    assert MIN_PLAYERS == 5 and MAX_PLAYERS == 7
    assert BASE_BID < MAX_BID
    assert ROOM_CODE_LENGTH == 4
    assert len(set(DEV_NAMES)) == len(DEV_NAMES)


def test_every_player_count_has_a_deck_rule():
    for n in range(MIN_PLAYERS, MAX_PLAYERS + 1):
        assert (52 - len(REMOVED_TWOS[n])) % n == 0

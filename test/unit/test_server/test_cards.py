"""
Tests for the card and deck model.
"""

import random
from collections import Counter

import pytest

from kaali_tilli.server.game.cards import Card, build_deck, deal, deck_points, sort_key


class TestCard:
    def test_card_id_and_value(self):
        card = Card("H", "A")
        assert card.id == "H-A"
        assert card.value == 14
        assert Card("D", "10").id == "D-10"

    def test_invalid_suit_and_rank(self):
        with pytest.raises(ValueError, match="Invalid suit"):
            Card("X", "A")
        with pytest.raises(ValueError, match="Invalid rank"):
            Card("H", "1")

    def test_from_id(self):
        assert Card.from_id("S-3") == Card("S", "3")
        assert Card.from_id("C-10") == Card("C", "10")
        with pytest.raises(ValueError):
            Card.from_id("S3")
        with pytest.raises(ValueError):
            Card.from_id(None)

    @pytest.mark.parametrize(
        "suit,rank,points",
        [
            ("H", "10", 10),
            ("D", "J", 10),
            ("C", "Q", 10),
            ("S", "K", 10),
            ("H", "A", 10),
            ("D", "5", 5),
            ("S", "3", 30),
            ("H", "3", 0),
            ("C", "9", 0),
            ("S", "2", 0),
        ],
    )
    def test_points(self, suit, rank, points):
        assert Card(suit, rank).points == points

    def test_to_dict(self):
        assert Card("S", "3").to_dict() == {"id": "S-3", "suit": "S", "rank": "3", "points": 30}

    def test_cards_are_immutable(self):
        card = Card("H", "A")
        with pytest.raises(Exception):
            card.rank = "K"


class TestDeck:
    @pytest.mark.parametrize("players,size", [(5, 50), (6, 48), (7, 49)])
    def test_deck_size(self, players, size):
        deck = build_deck(players)
        assert len(deck) == size
        assert len(set(deck)) == size
        assert size % players == 0

    def test_removed_twos(self):
        twos = lambda n: {c.suit for c in build_deck(n) if c.rank == "2"}  # noqa: E731
        assert twos(5) == {"H", "S"}
        assert twos(6) == set()
        assert twos(7) == {"S"}

    @pytest.mark.parametrize("players", [5, 6, 7])
    def test_total_points_is_fixed(self, players):
        assert deck_points(build_deck(players)) == 250

    def test_unsupported_player_count(self):
        with pytest.raises(ValueError):
            build_deck(4)


class TestDeal:
    @pytest.mark.parametrize("players,hand_size", [(5, 10), (6, 8), (7, 7)])
    def test_deal_partitions_deck(self, players, hand_size):
        deck = build_deck(players)
        hands = deal(deck, players, random.Random(7))

        assert len(hands) == players
        assert all(len(hand) == hand_size for hand in hands)
        dealt = Counter(card for hand in hands for card in hand)
        assert dealt == Counter(deck)

    def test_hands_are_sorted_by_suit_then_rank(self):
        for hand in deal(build_deck(5), 5, random.Random(3)):
            assert hand == sorted(hand, key=sort_key)

    def test_deal_does_not_mutate_deck(self):
        deck = build_deck(6)
        before = list(deck)
        deal(deck, 6, random.Random(1))
        assert deck == before

    def test_deal_is_reproducible_with_seed(self):
        deck = build_deck(7)
        assert deal(deck, 7, random.Random(42)) == deal(deck, 7, random.Random(42))

    def test_uneven_split_rejected(self):
        with pytest.raises(ValueError):
            deal(build_deck(5), 6)

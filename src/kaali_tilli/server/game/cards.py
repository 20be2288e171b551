"""
牌与牌堆

一副牌按人数去掉若干张 "2"，保证能被人数整除：

- 5 人：50 张，去掉方块 2、梅花 2
- 6 人：48 张，去掉全部 2
- 7 人：49 张，去掉红桃 2、方块 2、梅花 2（保留黑桃 2）

分值：10/J/Q/K/A 各 10 分，5 为 5 分，黑桃 3 为 30 分，其余 0 分。
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Dict, List, Optional

from kaali_tilli.shared.constants import REMOVED_TWOS

SUITS = ["H", "D", "C", "S"]
SUIT_NAMES = {"H": "Hearts", "D": "Diamonds", "C": "Clubs", "S": "Spades"}
RANKS = ["2", "3", "4", "5", "6", "7", "8", "9", "10", "J", "Q", "K", "A"]
RANK_VALUES = {rank: idx for idx, rank in enumerate(RANKS, start=2)}

HONOUR_RANKS = ("10", "J", "Q", "K", "A")


@dataclass(frozen=True)
class Card:
    """
    不可变的一张牌。

    Attributes:
        suit: 花色（H/D/C/S）
        rank: 点数（2-10, J, Q, K, A）
    """

    suit: str
    rank: str

    def __post_init__(self):
        if self.suit not in SUITS:
            raise ValueError(f"Invalid suit: {self.suit}. Must be one of {SUITS}")
        if self.rank not in RANKS:
            raise ValueError(f"Invalid rank: {self.rank}. Must be one of {RANKS}")

    @property
    def id(self) -> str:
        """线上使用的标识，例如 "H-A"、"D-10"。"""
        return f"{self.suit}-{self.rank}"

    @property
    def value(self) -> int:
        """比大小用的数值（2=2 ... A=14）。"""
        return RANK_VALUES[self.rank]

    @property
    def points(self) -> int:
        if self.suit == "S" and self.rank == "3":
            return 30
        if self.rank in HONOUR_RANKS:
            return 10
        if self.rank == "5":
            return 5
        return 0

    @classmethod
    def from_id(cls, card_id: str) -> "Card":
        """由 "S-3" 这样的标识还原；非法标识抛出 ValueError。"""
        if not isinstance(card_id, str) or "-" not in card_id:
            raise ValueError(f"Invalid card id: {card_id!r}")
        suit, rank = card_id.split("-", 1)
        return cls(suit, rank)

    def to_dict(self) -> Dict[str, object]:
        return {"id": self.id, "suit": self.suit, "rank": self.rank, "points": self.points}

    def __str__(self) -> str:
        return self.id


def sort_key(card: Card):
    """手牌排序：先花色，再点数。"""
    return (card.suit, card.value)


def build_deck(player_count: int) -> List[Card]:
    """按人数生成未洗的一副牌。"""
    if player_count not in REMOVED_TWOS:
        raise ValueError(f"No deck rule for {player_count} players")
    removed = REMOVED_TWOS[player_count]
    return [
        Card(suit, rank)
        for suit in SUITS
        for rank in RANKS
        if not (rank == "2" and suit in removed)
    ]


def deck_points(cards: List[Card]) -> int:
    return sum(card.points for card in cards)


def deal(deck: List[Card], player_count: int, rng: Optional[random.Random] = None) -> List[List[Card]]:
    """
    洗牌后按连续等长切片发给每个座位，每手牌排好序。

    Args:
        deck: 本局的牌（不会被修改）
        player_count: 座位数
        rng: 可选的随机源，便于测试复现

    Returns:
        每个座位一手牌

    Raises:
        ValueError: 牌数不能被人数整除
    """
    if len(deck) % player_count != 0:
        raise ValueError(f"Cannot split {len(deck)} cards between {player_count} players")
    shuffled = list(deck)
    (rng or random).shuffle(shuffled)
    per_player = len(shuffled) // player_count
    return [
        sorted(shuffled[i * per_player:(i + 1) * per_player], key=sort_key)
        for i in range(player_count)
    ]


__all__ = [
    "SUITS",
    "SUIT_NAMES",
    "RANKS",
    "RANK_VALUES",
    "Card",
    "sort_key",
    "build_deck",
    "deck_points",
    "deal",
]

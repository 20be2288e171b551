"""
Kaali Tilli 牌局状态机

阶段流转：WAITING -> BIDDING -> PARTNER_SELECT -> PLAYING -> FINISHED。

- 叫分：底分 150，上限 250，加价必须严格高于当前分。放弃（PASS）后本轮不能再叫，
  准备（DONE）表示接受当前分。所有仍在叫分的玩家都准备好、或全部放弃时叫分结束。
- 选伙伴：庄家（叫分最高者）报两张牌和主花色。持有这两张牌的人在出牌之前不公开。
- 出牌：必须跟首家花色；没有该花色时，手里有主必须出主（"切"）；都没有则随意。
- 结算：有主出主最大者赢，否则首家花色最大者赢；赢家拿走这一墩的分并先出下一墩。
- 终局：庄家和已亮明的伙伴分数之和不低于叫分则庄家一方获胜。

一墩打满后进入 "结算中"（``resolving``），此时拒绝任何出牌，直到
:meth:`KaaliTilliGame.resolve_trick` 被调用。延时调度由房间负责。
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Union

from kaali_tilli.server.errors import (
    CardNotInHand,
    IllegalMove,
    InvalidBid,
    InvalidPartnerSelection,
    InvalidPlayerCount,
    NotYourAction,
    NotYourTurn,
    TrickLocked,
)
from kaali_tilli.server.game.cards import SUITS, Card, build_deck, deal
from kaali_tilli.shared.constants import (
    BASE_BID,
    BID_DONE,
    BID_PASS,
    MAX_BID,
    MAX_PLAYERS,
    MIN_PLAYERS,
)

logger = logging.getLogger(__name__)

PHASE_WAITING = "WAITING"
PHASE_BIDDING = "BIDDING"
PHASE_PARTNER_SELECT = "PARTNER_SELECT"
PHASE_PLAYING = "PLAYING"
PHASE_FINISHED = "FINISHED"

TEAM_BIDDER = "BIDDER"
TEAM_DEFENDER = "DEFENDER"
TEAM_PARTNER = "PARTNER"


class SelfPartnerPolicy(str, Enum):
    """庄家报了自己手里的牌时怎么处理"""

    ALLOW = "allow"  # 允许，打出时不亮任何人，庄家少一个伙伴
    REJECT = "reject"  # 选伙伴时直接拒绝


@dataclass
class Player:
    id: str
    name: str
    hand: List[Card] = field(default_factory=list)
    points_received: int = 0
    bid: Optional[int] = None
    team: Optional[str] = None


@dataclass(frozen=True)
class Play:
    player_id: str
    card: Card


@dataclass(frozen=True)
class TrickResult:
    winner_id: str
    points: int
    plays: tuple


@dataclass(frozen=True)
class MatchResult:
    bid: int
    bidder_team_points: int
    defender_team_points: int
    bidder_team_won: bool


def trick_winner(plays: Sequence[Play], trump_suit: Optional[str]) -> Play:
    """
    决定一墩的赢家。

    有人出主：最大的主赢；否则首家花色最大的牌赢。只依赖出牌顺序和主花色。

    Raises:
        ValueError: 这一墩还没有牌
    """
    if not plays:
        raise ValueError("Cannot determine winner: no cards played")

    if trump_suit is not None:
        trumps = [p for p in plays if p.card.suit == trump_suit]
        if trumps:
            return max(trumps, key=lambda p: p.card.value)

    lead_suit = plays[0].card.suit
    return max((p for p in plays if p.card.suit == lead_suit), key=lambda p: p.card.value)


class KaaliTilliGame:
    """一个房间里的一局牌。所有方法都假定调用方已经串行化（房间锁）。"""

    def __init__(
        self,
        player_ids: Sequence[str],
        player_names: Optional[Dict[str, str]] = None,
        on_trick_complete: Optional[Callable[[str, int], None]] = None,
        rng: Optional[random.Random] = None,
        self_partner_policy: SelfPartnerPolicy = SelfPartnerPolicy.ALLOW,
    ):
        if len(set(player_ids)) != len(player_ids):
            raise ValueError("Duplicate player ids")
        names = player_names or {}
        self.phase = PHASE_WAITING
        self.players: Dict[str, Player] = {
            pid: Player(pid, names.get(pid) or f"Player {pid[:4]}") for pid in player_ids
        }
        self.player_order: List[str] = list(player_ids)
        self.on_trick_complete = on_trick_complete
        self.rng = rng
        self.self_partner_policy = SelfPartnerPolicy(self_partner_policy)

        self.deck: List[Card] = []
        self.trump_suit: Optional[str] = None
        self.bidder_id: Optional[str] = None
        self.current_bid = BASE_BID

        # 叫分状态
        self.active_bidders = set(self.player_order)
        self.ready_players = set()

        self.partners: List[str] = []  # 两张伙伴牌的 id
        self.revealed_partners: List[str] = []  # 已经打出伙伴牌的玩家

        self.current_trick: List[Play] = []
        self.trick_starter_index = 0
        self.resolving = False
        self.completed_tricks: List[TrickResult] = []
        self.result: Optional[MatchResult] = None

    # 开局
    def start_game(self) -> None:
        """生成牌堆、发牌并进入叫分阶段。"""
        count = len(self.player_order)
        if count < MIN_PLAYERS or count > MAX_PLAYERS:
            raise InvalidPlayerCount()

        self.deck = build_deck(count)
        hands = deal(self.deck, count, self.rng)
        for pid, hand in zip(self.player_order, hands):
            player = self.players[pid]
            player.hand = hand
            player.points_received = 0
            player.bid = None
            player.team = None

        self.phase = PHASE_BIDDING
        self.current_bid = BASE_BID
        self.bidder_id = None
        self.trump_suit = None
        self.active_bidders = set(self.player_order)
        self.ready_players = set()
        self.partners = []
        self.revealed_partners = []
        self.current_trick = []
        self.trick_starter_index = 0
        self.resolving = False
        self.completed_tricks = []
        self.result = None
        logger.info(f"发牌完成: {count} 人, {len(self.deck)} 张, 每人 {len(self.deck) // count} 张")

    # 叫分
    def handle_bid(self, player_id: str, amount: Union[int, str]) -> None:
        """加价（数字）、放弃（PASS）或准备（DONE）。"""
        if self.phase != PHASE_BIDDING:
            raise NotYourAction("Bidding is not open")
        if player_id not in self.players:
            raise NotYourAction("You are not seated in this match")
        if player_id not in self.active_bidders:
            raise NotYourAction("You have already passed")

        if amount == BID_PASS:
            self.active_bidders.discard(player_id)
            self.ready_players.discard(player_id)
        elif amount == BID_DONE:
            self.ready_players.add(player_id)
        else:
            value = self._parse_bid(amount)
            if not (self.current_bid < value <= MAX_BID):
                raise InvalidBid(f"Bid must be more than {self.current_bid} and at most {MAX_BID}")
            self.current_bid = value
            self.bidder_id = player_id
            self.players[player_id].bid = value
            # 加价即表示接受自己的分数
            self.ready_players = {player_id}

        self._check_bidding_complete()

    @staticmethod
    def _parse_bid(amount) -> int:
        if isinstance(amount, bool):
            raise InvalidBid()
        if isinstance(amount, float) and amount.is_integer():
            return int(amount)
        if isinstance(amount, int):
            return amount
        raise InvalidBid(f"Unknown bid: {amount!r}")

    def _check_bidding_complete(self) -> None:
        if not self.active_bidders or self.active_bidders <= self.ready_players:
            self._finalize_bidding()

    def finish_bidding(self) -> None:
        """强制结束叫分（管理操作）。"""
        if self.phase != PHASE_BIDDING:
            raise NotYourAction("Bidding is not open")
        self._finalize_bidding()

    def _finalize_bidding(self) -> None:
        if self.bidder_id is None:
            # 没人叫分：首座以底分做庄
            self.bidder_id = self.player_order[0]
            self.current_bid = BASE_BID
        self.players[self.bidder_id].team = TEAM_BIDDER
        self.phase = PHASE_PARTNER_SELECT
        logger.info(f"叫分结束: 庄家 {self.players[self.bidder_id].name}, 分数 {self.current_bid}")

    # 选伙伴
    def set_partners(self, player_id: str, card_ids: Sequence[str], trump: str) -> None:
        if self.phase != PHASE_PARTNER_SELECT or player_id != self.bidder_id:
            raise NotYourAction("Only the bidder can pick partners now")
        if not isinstance(card_ids, (list, tuple)) or len(card_ids) != 2:
            raise InvalidPartnerSelection()
        try:
            cards = [Card.from_id(cid) for cid in card_ids]
        except ValueError:
            raise InvalidPartnerSelection("Unknown partner card")
        if cards[0] == cards[1]:
            raise InvalidPartnerSelection("Partner cards must be different")
        if any(card not in self.deck for card in cards):
            raise InvalidPartnerSelection("That card is not in this deck")
        if trump not in SUITS:
            raise InvalidPartnerSelection(f"Unknown trump suit: {trump!r}")
        if self.self_partner_policy == SelfPartnerPolicy.REJECT:
            if any(card in self.players[player_id].hand for card in cards):
                raise InvalidPartnerSelection("You cannot call a card from your own hand")

        self.partners = [card.id for card in cards]
        self.trump_suit = trump
        self.phase = PHASE_PLAYING
        # 庄家先出第一墩
        self.trick_starter_index = self.player_order.index(player_id)
        logger.info(f"伙伴牌 {self.partners}, 主 {trump}")

    # 出牌
    @property
    def current_turn(self) -> Optional[str]:
        """当前该出牌的玩家；不在出牌阶段或正在结算时为 None。"""
        if self.phase != PHASE_PLAYING or self.resolving:
            return None
        idx = (self.trick_starter_index + len(self.current_trick)) % len(self.player_order)
        return self.player_order[idx]

    @property
    def lead_suit(self) -> Optional[str]:
        return self.current_trick[0].card.suit if self.current_trick else None

    def is_legal_play(self, hand: Iterable[Card], card: Card) -> bool:
        """按完整手牌判断这张牌能不能出。"""
        lead = self.lead_suit
        if lead is None or card.suit == lead:
            return True
        hand = list(hand)
        if any(c.suit == lead for c in hand):
            return False
        if self.trump_suit is not None and card.suit != self.trump_suit:
            if any(c.suit == self.trump_suit for c in hand):
                return False
        return True

    def legal_cards(self, player_id: str) -> List[Card]:
        player = self.players.get(player_id)
        if player is None:
            return []
        return [card for card in player.hand if self.is_legal_play(player.hand, card)]

    def play_card(self, player_id: str, card_id: str) -> bool:
        """
        出一张牌。

        Returns:
            True 表示这一墩已满，调用方需要安排 :meth:`resolve_trick`。

        Raises:
            NotYourAction: 不在出牌阶段
            TrickLocked: 上一墩正在结算
            NotYourTurn: 没轮到该玩家
            CardNotInHand: 手里没有这张牌
            IllegalMove: 没跟花色或没切主
        """
        if self.phase != PHASE_PLAYING:
            raise NotYourAction("Not playing phase")
        if self.resolving:
            raise TrickLocked()
        if player_id != self.current_turn:
            raise NotYourTurn()

        player = self.players[player_id]
        card = next((c for c in player.hand if c.id == card_id), None)
        if card is None:
            raise CardNotInHand()
        if not self.is_legal_play(player.hand, card):
            raise IllegalMove()

        player.hand.remove(card)
        self.current_trick.append(Play(player_id, card))

        if card.id in self.partners and player_id != self.bidder_id:
            player.team = TEAM_PARTNER
            if player_id not in self.revealed_partners:
                self.revealed_partners.append(player_id)
                logger.info(f"{player.name} 打出伙伴牌 {card.id}")

        if len(self.current_trick) == len(self.player_order):
            self.resolving = True
            return True
        return False

    def resolve_trick(self) -> TrickResult:
        """结算已满的一墩，并在全部手牌打完时结束牌局。"""
        if not self.resolving:
            raise NotYourAction("No completed trick to resolve")

        plays = tuple(self.current_trick)
        winning = trick_winner(plays, self.trump_suit)
        points = sum(p.card.points for p in plays)
        winner = self.players[winning.player_id]
        winner.points_received += points

        result = TrickResult(winning.player_id, points, plays)
        self.completed_tricks.append(result)
        self.trick_starter_index = self.player_order.index(winning.player_id)
        self.current_trick = []
        self.resolving = False
        logger.info(f"{winner.name} 赢得一墩 ({winning.card.id}), {points} 分")

        if all(not p.hand for p in self.players.values()):
            self._end_game()

        if self.on_trick_complete:
            self.on_trick_complete(winning.player_id, points)
        return result

    # 终局
    def _end_game(self) -> None:
        self.phase = PHASE_FINISHED
        attacking = 0
        defending = 0
        for player in self.players.values():
            if player.team in (TEAM_BIDDER, TEAM_PARTNER):
                attacking += player.points_received
            else:
                player.team = TEAM_DEFENDER
                defending += player.points_received

        self.result = MatchResult(
            bid=self.current_bid,
            bidder_team_points=attacking,
            defender_team_points=defending,
            bidder_team_won=attacking >= self.current_bid,
        )
        logger.info(
            f"牌局结束: 叫分 {self.current_bid}, 庄家方 {attacking}, 闲家方 {defending}, "
            f"{'庄家方' if self.result.bidder_team_won else '闲家方'}获胜"
        )


__all__ = [
    "PHASE_WAITING",
    "PHASE_BIDDING",
    "PHASE_PARTNER_SELECT",
    "PHASE_PLAYING",
    "PHASE_FINISHED",
    "TEAM_BIDDER",
    "TEAM_DEFENDER",
    "TEAM_PARTNER",
    "SelfPartnerPolicy",
    "Player",
    "Play",
    "TrickResult",
    "MatchResult",
    "trick_winner",
    "KaaliTilliGame",
]

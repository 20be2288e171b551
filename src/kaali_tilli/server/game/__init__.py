"""
牌局逻辑模块

实现牌与牌堆、叫分/选伙伴/出牌的状态机、房间名单与过滤视图、房间管理。
"""

from .cards import Card, build_deck, deal
from .engine import KaaliTilliGame, SelfPartnerPolicy
from .manager import RoomManager
from .room import GameRoom

__all__ = [
    "Card",
    "build_deck",
    "deal",
    "KaaliTilliGame",
    "SelfPartnerPolicy",
    "GameRoom",
    "RoomManager",
]

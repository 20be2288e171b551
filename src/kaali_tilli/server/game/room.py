import threading
from typing import Dict, List, Optional

from kaali_tilli.server.game.engine import PHASE_FINISHED, KaaliTilliGame
from kaali_tilli.shared.constants import DEV_NAMES


class RoomLock:
    """
    按到达顺序发放的可重入锁。

    每次首次获取都领一个号，释放时叫下一个号；同一线程重入不领号。
    这样同一房间的请求按照调用 ``acquire`` 的先后执行。
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._next_ticket = 0
        self._serving = 0
        self._owner: Optional[int] = None
        self._depth = 0

    @property
    def waiting(self) -> int:
        with self._cond:
            return self._next_ticket - self._serving - (1 if self._owner is not None else 0)

    def acquire(self) -> bool:
        me = threading.get_ident()
        with self._cond:
            if self._owner == me:
                self._depth += 1
                return True
            ticket = self._next_ticket
            self._next_ticket += 1
            while self._serving != ticket:
                self._cond.wait()
            self._owner = me
            self._depth = 1
            return True

    def release(self) -> None:
        with self._cond:
            if self._owner != threading.get_ident():
                raise RuntimeError("cannot release un-acquired lock")
            self._depth -= 1
            if self._depth == 0:
                self._owner = None
                self._serving += 1
                self._cond.notify_all()

    def __enter__(self):
        return self.acquire()

    def __exit__(self, *exc):
        self.release()


class GameRoom:
    """
    游戏房间类，管理玩家名单、房主和当前牌局。

    名单顺序即座位顺序。对房间的所有修改都必须持有 ``lock``，
    结算一墩的延时任务也在同一把锁下执行。
    """

    def __init__(self, code: str, game_id: str):
        self.code = code
        self.game_id = game_id
        self.players: List[str] = []
        self.player_names: Dict[str, str] = {}
        self.host_id: Optional[str] = None
        self.game: Optional[KaaliTilliGame] = None
        self.lock = RoomLock()
        # 被回收后置为 True，之后的加入请求按房间不存在处理
        self.closed = False

    def add_player(self, player_id: str, player_name: Optional[str] = None) -> str:
        """添加玩家并返回其名字；已在房间内则保持原样。"""
        if player_id in self.player_names:
            return self.player_names[player_id]

        self.players.append(player_id)
        used = set(self.player_names.values())
        name = player_name or next((n for n in DEV_NAMES if n not in used), None)
        if not name:
            n = len(self.players)
            while f"Player {n}" in used:
                n += 1
            name = f"Player {n}"
        self.player_names[player_id] = name

        if self.host_id is None:
            self.host_id = player_id
        return name

    def remove_player(self, player_id: str) -> bool:
        """从房间移除玩家；房主离开时由下一位接任。"""
        if player_id not in self.player_names:
            return False
        self.players.remove(player_id)
        del self.player_names[player_id]
        if self.host_id == player_id:
            self.host_id = self.players[0] if self.players else None
        return True

    def is_empty(self) -> bool:
        return not self.players

    def has_live_match(self) -> bool:
        return self.game is not None and self.game.phase != PHASE_FINISHED

    def has_abandoned_seat(self) -> bool:
        """牌局中有座位的玩家已不在房间里，这局无法再打完。"""
        return self.game is not None and any(pid not in self.player_names for pid in self.game.player_order)

    def players_list(self) -> List[Dict[str, str]]:
        return [{"id": pid, "name": self.player_names.get(pid, "Unknown")} for pid in self.players]

    def get_player_view(self, player_id: str) -> Optional[dict]:
        """
        某个玩家能看到的牌局状态。

        只包含该玩家自己的手牌；其他人只给出剩余张数。伙伴只给出牌的 id，
        持有者在打出伙伴牌之前不会出现在任何字段里。没有牌局时返回 None。
        """
        game = self.game
        if game is None:
            return None

        me = game.players.get(player_id)
        bidder = game.players.get(game.bidder_id) if game.bidder_id else None
        finished = game.phase == PHASE_FINISHED

        view = {
            "phase": game.phase,
            "hand": [card.to_dict() for card in me.hand] if me else [],
            "myBid": me.bid if me else None,
            "currentBid": game.current_bid,
            "bidderId": game.bidder_id,
            "bidderName": bidder.name if bidder else None,
            "trump": game.trump_suit,
            "partners": list(game.partners),
            "revealedPartners": list(game.revealed_partners),
            "currentTrick": [
                {"playerId": play.player_id, "card": play.card.to_dict()} for play in game.current_trick
            ],
            "playerOrder": list(game.player_order),
            "trickStarterIndex": game.trick_starter_index,
            "currentTurn": game.current_turn,
            "resolving": game.resolving,
            "biddingState": {
                "activePlayers": [pid for pid in game.player_order if pid in game.active_bidders],
                "readyPlayers": [pid for pid in game.player_order if pid in game.ready_players],
            },
            "playerPoints": [
                {"playerId": pid, "points": game.players[pid].points_received} for pid in game.player_order
            ],
            "handCounts": [
                {"playerId": pid, "count": len(game.players[pid].hand)} for pid in game.player_order
            ],
            "trickPoints": me.points_received if me else 0,
        }

        if finished:
            view["scores"] = [
                {"id": p.id, "name": p.name, "team": p.team, "points": p.points_received}
                for p in (game.players[pid] for pid in game.player_order)
            ]
            result = game.result
            view["result"] = {
                "bid": result.bid,
                "bidderTeamPoints": result.bidder_team_points,
                "defenderTeamPoints": result.defender_team_points,
                "bidderTeamWon": result.bidder_team_won,
            }
        return view

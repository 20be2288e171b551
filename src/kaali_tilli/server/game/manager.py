"""
房间管理

RoomManager 维护房间码到房间的映射，把入站消息路由到对应房间并负责广播。
它不关心传输层：构造时传入 ``send(player_id, message)``，由网络层实现。

并发约定：
- ``_lock`` 只保护房间表和玩家所在房间的索引，持有时间很短，持有期间不会去拿房间锁；
- 同一房间的所有修改（名单、牌局动作、延时结算）都在该房间的 ``lock`` 下执行，
  不同房间互不阻塞；房间锁按到达顺序发放（见 ``RoomLock``），
  同一连接的消息由其会话线程依次处理，因此到达顺序即执行顺序；
- 广播在修改完成之后、仍持有房间锁时发出，客户端不会看到半更新的状态。
"""

from __future__ import annotations

import logging
import random
import threading
from typing import Any, Callable, Dict, Optional

from kaali_tilli.server.errors import (
    BadRequest,
    GameError,
    InvalidPlayerCount,
    NotHost,
    NotYourAction,
    RoomNotFound,
)
from kaali_tilli.server.game.engine import KaaliTilliGame, SelfPartnerPolicy
from kaali_tilli.server.game.room import GameRoom
from kaali_tilli.shared.constants import (
    ACTION_BID,
    ACTION_FINISH_BIDDING,
    ACTION_PICK_PARTNERS,
    ACTION_PLAY_CARD,
    DEFAULT_GAME_ID,
    DEV_NAMES,
    MAX_PLAYERS,
    MIN_PLAYERS,
    MSG_CREATE_ROOM,
    MSG_DISCONNECT,
    MSG_ERROR,
    MSG_GAME_ACTION,
    MSG_GAME_STATE,
    MSG_JOIN_ROOM,
    MSG_ROOM_CREATED,
    MSG_ROOM_JOINED,
    MSG_START_GAME,
    MSG_SYNC_ROOM_STATE,
    MSG_TRICK_WINNER,
    MSG_UPDATE_PLAYERS,
    ROOM_CODE_ALPHABET,
    ROOM_CODE_LENGTH,
    TRICK_RESOLVE_DELAY,
)
from kaali_tilli.shared.protocols import Message

logger = logging.getLogger(__name__)

SendFunc = Callable[[str, Message], None]
Scheduler = Callable[[float, Callable[[], None]], Any]


def start_timer(delay: float, fn: Callable[[], None]) -> threading.Timer:
    """默认调度器：守护线程定时器。"""
    timer = threading.Timer(delay, fn)
    timer.daemon = True
    timer.start()
    return timer


class RoomManager:
    """房间注册表 + 消息分发"""

    def __init__(
        self,
        send: SendFunc,
        resolve_delay: float = TRICK_RESOLVE_DELAY,
        scheduler: Optional[Scheduler] = None,
        rng: Optional[random.Random] = None,
        self_partner_policy: SelfPartnerPolicy = SelfPartnerPolicy.ALLOW,
    ):
        self._send = send
        self.resolve_delay = resolve_delay
        self._schedule = scheduler or start_timer
        self._rng = rng or random.Random()
        self.self_partner_policy = self_partner_policy
        self._lock = threading.Lock()
        self.rooms: Dict[str, GameRoom] = {}
        self._player_rooms: Dict[str, str] = {}

    # 房间表
    def _generate_room_code(self) -> str:
        """生成不与现存房间冲突的房间码（调用方持有 _lock）。"""
        while True:
            code = "".join(self._rng.choice(ROOM_CODE_ALPHABET) for _ in range(ROOM_CODE_LENGTH))
            if code not in self.rooms:
                return code

    def get_room(self, code) -> GameRoom:
        code = str(code or "").strip().upper()
        with self._lock:
            room = self.rooms.get(code)
        if room is None:
            raise RoomNotFound()
        return room

    def room_of(self, player_id: str) -> Optional[str]:
        with self._lock:
            return self._player_rooms.get(player_id)

    def _reap_if_empty(self, room: GameRoom) -> None:
        """房间空了就回收（调用方持有房间锁）。"""
        if not room.is_empty():
            return
        room.closed = True
        with self._lock:
            if self.rooms.get(room.code) is room:
                del self.rooms[room.code]
        logger.info(f"房间 {room.code} 已回收, 剩余房间数: {len(self.rooms)}")

    # 发送/广播
    def _error(self, player_id: str, err: GameError) -> None:
        data = {"message": err.message, "code": err.code}
        if isinstance(err, RoomNotFound):
            data["leave"] = True
        self._send(player_id, Message(MSG_ERROR, data))

    def _broadcast(self, room: GameRoom, msg: Message) -> None:
        for pid in list(room.players):
            self._send(pid, msg)

    def _broadcast_players(self, room: GameRoom) -> None:
        self._broadcast(room, Message(MSG_UPDATE_PLAYERS, room.players_list()))

    def _broadcast_game_state(self, room: GameRoom) -> None:
        """给每位玩家各自发送过滤后的牌局状态。"""
        if room.game is None:
            return
        for pid in list(room.players):
            self._send(pid, Message(MSG_GAME_STATE, room.get_player_view(pid)))

    # 房间操作
    def create_room(self, player_id: str, game_id: Optional[str] = None, player_name: Optional[str] = None) -> str:
        self.leave(player_id)
        with self._lock:
            code = self._generate_room_code()
            room = GameRoom(code, game_id or DEFAULT_GAME_ID)
            name = room.add_player(player_id, player_name or DEV_NAMES[0])
            self.rooms[code] = room
            self._player_rooms[player_id] = code
            total = len(self.rooms)

        logger.info(f"房间已创建: {code} by {name} ({player_id}), 当前房间数: {total}")
        with room.lock:
            self._send(player_id, Message(MSG_ROOM_CREATED, {"roomCode": code}))
            self._send(player_id, Message(MSG_UPDATE_PLAYERS, room.players_list()))
        return code

    def join_room(self, player_id: str, code, player_name: Optional[str] = None) -> GameRoom:
        room = self.get_room(code)
        if self.room_of(player_id) not in (None, room.code):
            self.leave(player_id)

        with room.lock:
            if room.closed:
                raise RoomNotFound()
            name = room.add_player(player_id, player_name)
            with self._lock:
                self._player_rooms[player_id] = room.code
            logger.info(f"玩家 {name} ({player_id}) 加入房间 {room.code}")
            self._send(player_id, Message(MSG_ROOM_JOINED, {"roomCode": room.code}))
            self._broadcast_players(room)
        return room

    def leave(self, player_id: str) -> None:
        """玩家断开或换房间时调用；不暂停进行中的牌局。"""
        with self._lock:
            code = self._player_rooms.pop(player_id, None)
            room = self.rooms.get(code) if code else None
        if room is None:
            return

        with room.lock:
            if not room.remove_player(player_id):
                return
            if room.has_live_match() and player_id in room.game.players:
                logger.warning(f"玩家 {player_id} 在牌局进行中离开房间 {room.code}")
            else:
                logger.info(f"玩家 {player_id} 离开房间 {room.code}")
            self._broadcast_players(room)
            self._reap_if_empty(room)

    def sync_room_state(self, player_id: str, code) -> None:
        """（重新）连接时只给请求者发送名单和自己的视图，不修改任何状态。"""
        room = self.get_room(code)
        with room.lock:
            self._send(player_id, Message(MSG_UPDATE_PLAYERS, room.players_list()))
            view = room.get_player_view(player_id)
            if view is not None:
                self._send(player_id, Message(MSG_GAME_STATE, view))

    def start_game(self, player_id: str, code) -> KaaliTilliGame:
        room = self.get_room(code)
        with room.lock:
            if room.host_id != player_id:
                raise NotHost()
            if not MIN_PLAYERS <= len(room.players) <= MAX_PLAYERS:
                raise InvalidPlayerCount()
            # 有座位的玩家离开后这局打不完，允许房主重开
            if room.has_live_match() and not room.has_abandoned_seat():
                raise NotYourAction("A match is already in progress")

            game = KaaliTilliGame(
                room.players,
                room.player_names,
                rng=self._rng,
                self_partner_policy=self.self_partner_policy,
            )
            game.on_trick_complete = self._trick_complete_callback(room, game)
            game.start_game()
            room.game = game
            logger.info(f"房间 {room.code} 开始新的一局, {len(room.players)} 人")
            self._broadcast_game_state(room)
        return game

    def _trick_complete_callback(self, room: GameRoom, game: KaaliTilliGame):
        def on_trick_complete(winner_id: str, points: int) -> None:
            winner_name = room.player_names.get(winner_id) or game.players[winner_id].name
            self._broadcast(room, Message(MSG_TRICK_WINNER, {
                "winnerId": winner_id,
                "winnerName": winner_name,
                "points": points,
            }))
            self._broadcast_game_state(room)

        return on_trick_complete

    def handle_game_action(self, player_id: str, code, action: str, payload: Optional[dict]) -> None:
        room = self.get_room(code)
        payload = payload if isinstance(payload, dict) else {}
        with room.lock:
            game = room.game
            if game is None:
                raise NotYourAction("No match in progress")

            if action == ACTION_BID:
                game.handle_bid(player_id, payload.get("amount"))
            elif action == ACTION_FINISH_BIDDING:
                if player_id not in game.players:
                    raise NotYourAction("You are not seated in this match")
                game.finish_bidding()
            elif action == ACTION_PICK_PARTNERS:
                game.set_partners(player_id, payload.get("cards"), payload.get("trump"))
            elif action == ACTION_PLAY_CARD:
                if game.play_card(player_id, payload.get("cardId")):
                    self._schedule(self.resolve_delay, lambda: self._resolve_trick(room, game))
            else:
                raise BadRequest(f"Unknown action: {action}")

            self._broadcast_game_state(room)

    def _resolve_trick(self, room: GameRoom, game: KaaliTilliGame) -> None:
        """延时结算任务，在房间锁内执行。"""
        with room.lock:
            # 房间已回收或牌局已被替换
            if room.closed or room.game is not game or not game.resolving:
                return
            try:
                game.resolve_trick()
            except Exception:
                logger.exception(f"房间 {room.code} 结算失败")

    # 消息入口
    def handle_message(self, player_id: str, msg: Message) -> None:
        """路由一条入站消息；失败只回复给发起者。"""
        t = msg.type
        data = msg.data if isinstance(msg.data, dict) else {}
        logger.debug(f"收到消息: type={t}, from={player_id}")

        try:
            if t == MSG_CREATE_ROOM:
                self.create_room(player_id, data.get("gameId"), data.get("playerName"))
            elif t == MSG_JOIN_ROOM:
                self.join_room(player_id, data.get("roomCode"), data.get("playerName"))
            elif t == MSG_SYNC_ROOM_STATE:
                self.sync_room_state(player_id, data.get("roomCode"))
            elif t == MSG_START_GAME:
                self.start_game(player_id, data.get("roomCode"))
            elif t == MSG_GAME_ACTION:
                self.handle_game_action(player_id, data.get("roomCode"), data.get("action"), data.get("payload"))
            elif t == MSG_DISCONNECT:
                self.leave(player_id)
            else:
                raise BadRequest(f"unknown type: {t}")
        except GameError as e:
            logger.warning(f"拒绝 {t} from {player_id}: {e.code} {e.message}")
            self._error(player_id, e)
        except Exception:
            logger.exception(f"处理消息 {t} 出错")
            self._send(player_id, Message(MSG_ERROR, {"message": "Internal server error", "code": "InternalError"}))


__all__ = ["RoomManager", "start_timer"]

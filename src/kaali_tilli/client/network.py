"""
简单的客户端网络封装：负责连接服务器、收发消息并提供事件队列。
"""
from __future__ import annotations

import logging
import socket
import threading
import time
from queue import Empty, SimpleQueue
from typing import Any, Dict, List, Optional, Union

from kaali_tilli.shared.constants import (
    ACTION_BID,
    ACTION_FINISH_BIDDING,
    ACTION_PICK_PARTNERS,
    ACTION_PLAY_CARD,
    BUFFER_SIZE,
    DEFAULT_GAME_ID,
    DEFAULT_PORT,
    MSG_CONNECTED,
    MSG_CREATE_ROOM,
    MSG_GAME_ACTION,
    MSG_JOIN_ROOM,
    MSG_ROOM_CREATED,
    MSG_ROOM_JOINED,
    MSG_START_GAME,
    MSG_SYNC_ROOM_STATE,
)
from kaali_tilli.shared.protocols import Message

logger = logging.getLogger(__name__)


class NetworkClient:
    """线程驱动的轻量客户端，收到的消息放进 events 队列。"""

    def __init__(self, host: str = "127.0.0.1", port: int = DEFAULT_PORT) -> None:
        self.host = host
        self.port = port
        self.sock: Optional[socket.socket] = None
        self._recv_thread: Optional[threading.Thread] = None
        self._running = threading.Event()
        self._buf = bytearray()
        self.events: SimpleQueue[Message] = SimpleQueue()
        self.player_id: Optional[str] = None
        self.room_code: Optional[str] = None

    @property
    def connected(self) -> bool:
        return bool(self.sock) and self._running.is_set()

    def connect(self, timeout: float = 5.0) -> bool:
        """连接服务器并等待服务器分配的玩家 id。"""
        if self.connected:
            return True
        try:
            self.sock = socket.create_connection((self.host, self.port), timeout=timeout)
            # 连接成功后取消超时，接收线程阻塞读取
            self.sock.settimeout(None)
        except OSError as e:
            logger.warning(f"连接失败: {e}")
            self.close()
            return False
        self._running.set()
        self._recv_thread = threading.Thread(target=self._recv_loop, daemon=True)
        self._recv_thread.start()
        hello = self.wait_for(MSG_CONNECTED, timeout)
        if hello is None:
            self.close()
            return False
        self.player_id = hello.data.get("playerId")
        return True

    # 房间
    def create_room(self, player_name: str, game_id: str = DEFAULT_GAME_ID) -> None:
        self._send(Message(MSG_CREATE_ROOM, {"gameId": game_id, "playerName": player_name}))

    def join_room(self, room_code: str, player_name: Optional[str] = None) -> None:
        data = {"roomCode": room_code}
        if player_name:
            data["playerName"] = player_name
        self._send(Message(MSG_JOIN_ROOM, data))

    def sync_room_state(self, room_code: Optional[str] = None) -> None:
        self._send(Message(MSG_SYNC_ROOM_STATE, {"roomCode": room_code or self.room_code}))

    def start_game(self, room_code: Optional[str] = None) -> None:
        self._send(Message(MSG_START_GAME, {"roomCode": room_code or self.room_code}))

    # 牌局动作
    def game_action(self, action: str, payload: Dict[str, Any], room_code: Optional[str] = None) -> None:
        self._send(Message(MSG_GAME_ACTION, {
            "roomCode": room_code or self.room_code,
            "action": action,
            "payload": payload,
        }))

    def bid(self, amount: Union[int, str]) -> None:
        """叫分：数字加价，或 "PASS" / "DONE"。"""
        self.game_action(ACTION_BID, {"amount": amount})

    def finish_bidding(self) -> None:
        self.game_action(ACTION_FINISH_BIDDING, {})

    def pick_partners(self, cards: List[str], trump: str) -> None:
        self.game_action(ACTION_PICK_PARTNERS, {"cards": list(cards), "trump": trump})

    def play_card(self, card_id: str) -> None:
        self.game_action(ACTION_PLAY_CARD, {"cardId": card_id})

    # 事件
    def drain_events(self) -> List[Message]:
        items: List[Message] = []
        while True:
            try:
                items.append(self.events.get_nowait())
            except Empty:
                break
        return items

    def wait_for(self, msg_type: str, timeout: float = 5.0) -> Optional[Message]:
        """等待某类消息，期间收到的其他消息被丢弃。"""
        deadline = time.monotonic() + timeout
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return None
            try:
                msg = self.events.get(timeout=remaining)
            except Empty:
                return None
            if msg.type == msg_type:
                if msg.type in (MSG_ROOM_CREATED, MSG_ROOM_JOINED):
                    self.room_code = msg.data.get("roomCode")
                return msg

    def close(self) -> None:
        self._running.clear()
        try:
            if self.sock:
                try:
                    self.sock.shutdown(socket.SHUT_RDWR)
                except OSError:
                    pass
                self.sock.close()
        finally:
            self.sock = None

    # 内部方法
    def _send(self, msg: Message) -> None:
        if not self.sock:
            return
        try:
            payload = msg.to_json() + "\n"
            self.sock.sendall(payload.encode("utf-8"))
        except OSError:
            self.close()

    def _recv_loop(self) -> None:
        try:
            while self._running.is_set() and self.sock:
                data = self.sock.recv(BUFFER_SIZE)
                if not data:
                    break
                self._buf.extend(data)
                while True:
                    try:
                        idx = self._buf.index(ord("\n"))
                    except ValueError:
                        break
                    raw = bytes(self._buf[:idx])
                    del self._buf[: idx + 1]
                    self._handle_raw(raw)
        except OSError:
            pass
        finally:
            self.close()

    def _handle_raw(self, raw: bytes) -> None:
        try:
            msg = Message.from_json(raw.decode("utf-8", errors="replace"))
        except ValueError:
            # 忽略无法解析的消息
            return
        self.events.put(msg)


__all__ = ["NetworkClient"]

"""
网络通信模块

处理 Socket 连接、消息收发、协议解析等网络功能。每个连接一个线程，
消息按行分隔的 JSON，具体的房间/牌局逻辑交给 RoomManager。
"""

from __future__ import annotations

import logging
import queue
import socket
import threading
import uuid
from typing import Dict, Optional, Tuple

from kaali_tilli.server.game.manager import RoomManager
from kaali_tilli.shared.constants import (
	BUFFER_SIZE,
	DEFAULT_HOST,
	DEFAULT_PORT,
	MSG_CONNECTED,
	MSG_ERROR,
	SEND_QUEUE_LIMIT,
	TRICK_RESOLVE_DELAY,
)
from kaali_tilli.shared.protocols import Message

logger = logging.getLogger(__name__)


class ClientSession:
	"""
	客户端会话，封装连接与玩家标识。

	发送走独立的写线程：调用方只把数据放进有界队列，不会阻塞在对端不读的 socket 上。
	"""

	def __init__(self, conn: socket.socket, addr: Tuple[str, int], queue_limit: int = SEND_QUEUE_LIMIT):
		self.conn = conn
		self.addr = addr
		self.player_id = uuid.uuid4().hex
		self._recv_buffer = bytearray()
		self._outbox: "queue.Queue[Optional[bytes]]" = queue.Queue(maxsize=queue_limit)
		self._closed = threading.Event()
		self._writer: Optional[threading.Thread] = None

	@property
	def closed(self) -> bool:
		return self._closed.is_set()

	def start_writer(self) -> None:
		self._writer = threading.Thread(target=self._write_loop, name=f"writer-{self.player_id[:8]}", daemon=True)
		self._writer.start()

	def enqueue(self, data: bytes) -> bool:
		"""放入发送队列；队列已满或会话已关闭时返回 False。"""
		if self.closed:
			return False
		try:
			self._outbox.put_nowait(data)
		except queue.Full:
			return False
		return True

	def _write_loop(self) -> None:
		while True:
			data = self._outbox.get()
			if data is None or self.closed:
				break
			try:
				self.conn.sendall(data)
			except OSError:
				self.close()
				break

	def close(self) -> None:
		if self._closed.is_set():
			return
		self._closed.set()
		try:
			# // 唤醒空闲的写线程；队列满时写线程正阻塞在 sendall，由 shutdown 唤醒
			self._outbox.put_nowait(None)
		except queue.Full:
			pass
		try:
			# // 先 shutdown 以唤醒阻塞在 recv/sendall 上的线程
			self.conn.shutdown(socket.SHUT_RDWR)
		except OSError:
			pass
		try:
			self.conn.close()
		except OSError:
			pass


class NetworkServer:
	"""网络服务器，负责会话管理，把消息交给 RoomManager"""

	def __init__(self, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT,
				 resolve_delay: float = TRICK_RESOLVE_DELAY, manager: Optional[RoomManager] = None,
				 send_queue_limit: int = SEND_QUEUE_LIMIT):
		self.host = host
		self.port = port
		self.send_queue_limit = send_queue_limit
		self._sock: Optional[socket.socket] = None
		self._accept_thread: Optional[threading.Thread] = None
		self._running = threading.Event()
		self._lock = threading.Lock()
		self.sessions: Dict[str, ClientSession] = {}
		self.manager = manager or RoomManager(self.send_to, resolve_delay=resolve_delay)

	# 服务器生命周期
	def start(self) -> None:
		"""启动服务器并进入 Accept 循环"""
		self._sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
		# // 允许快速重启服务
		self._sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
		self._sock.bind((self.host, self.port))
		# // port=0 时取系统分配的端口
		self.port = self._sock.getsockname()[1]
		self._sock.listen(32)
		self._running.set()
		self._accept_thread = threading.Thread(target=self._accept_loop, name="accept-loop", daemon=True)
		self._accept_thread.start()
		logger.info(f"监听地址: {self.host}:{self.port}")

	def stop(self) -> None:
		"""停止服务器并关闭所有会话"""
		self._running.clear()
		try:
			if self._sock:
				# // 触发 accept 退出
				try:
					self._sock.shutdown(socket.SHUT_RDWR)
				except OSError:
					pass
				self._sock.close()
		finally:
			self._sock = None
		with self._lock:
			sessions = list(self.sessions.values())
			self.sessions.clear()
		for sess in sessions:
			sess.close()

	# 接入与会话线程
	def _accept_loop(self) -> None:
		"""Accept 新连接并为其创建会话线程"""
		while self._running.is_set():
			try:
				conn, addr = self._sock.accept()  # type: ignore[union-attr]
			except OSError:
				# // 套接字已关闭或出错，退出循环
				break
			sess = ClientSession(conn, addr, self.send_queue_limit)
			self._register(sess)
			logger.info(f"玩家连接: {sess.player_id} {addr}")
			self._send(sess, Message(MSG_CONNECTED, {"playerId": sess.player_id}))
			t = threading.Thread(target=self._session_loop, args=(sess,), daemon=True)
			t.start()

	def _register(self, sess: ClientSession) -> None:
		"""登记会话并启动其写线程"""
		with self._lock:
			self.sessions[sess.player_id] = sess
		sess.start_writer()

	def _session_loop(self, sess: ClientSession) -> None:
		"""单会话收发循环：按行（\\n）读取 JSON 消息并路由"""
		conn = sess.conn
		try:
			while self._running.is_set():
				data = conn.recv(BUFFER_SIZE)
				if not data:
					break
				sess._recv_buffer.extend(data)
				# // 简单分包：按换行符划分消息
				while True:
					try:
						idx = sess._recv_buffer.index(ord("\n"))
					except ValueError:
						break
					raw = bytes(sess._recv_buffer[:idx])
					del sess._recv_buffer[: idx + 1]
					self._handle_raw_message(sess, raw)
		except OSError:
			pass
		except Exception:
			logger.exception(f"会话 {sess.player_id} 异常")
		finally:
			self._on_disconnect(sess)

	# 消息处理
	def _handle_raw_message(self, sess: ClientSession, raw: bytes) -> None:
		"""原始字节消息 -> JSON -> Message 并路由"""
		if not raw.strip():
			return
		try:
			msg = Message.from_json(raw.decode("utf-8", errors="replace"))
		except ValueError:
			self._send(sess, Message(MSG_ERROR, {"message": "Malformed message", "code": "BadRequest"}))
			return
		self.manager.handle_message(sess.player_id, msg)

	# 发送
	def send_to(self, player_id: str, msg: Message) -> None:
		with self._lock:
			sess = self.sessions.get(player_id)
		if sess is not None:
			self._send(sess, msg)

	def _send(self, sess: ClientSession, msg: Message) -> None:
		text = msg.to_json() + "\n"
		if sess.enqueue(text.encode("utf-8")) or sess.closed:
			return
		# // 对端长期不读，断开连接，由会话线程负责清理
		logger.warning(f"玩家 {sess.player_id} 发送队列已满，断开连接")
		sess.close()

	# 断开清理
	def _on_disconnect(self, sess: ClientSession) -> None:
		with self._lock:
			known = self.sessions.pop(sess.player_id, None) is not None
		sess.close()
		if known:
			logger.info(f"玩家断开: {sess.player_id}")
		self.manager.leave(sess.player_id)


__all__ = [
	"ClientSession",
	"NetworkServer",
]

"""
连接登记表

连接 id -> 会话的映射，仅用于定位快照的发送目标。
"""

from __future__ import annotations

import logging
import socket
import uuid
from typing import Dict, List, Optional, Tuple

from cardtable.shared.constants import MAX_CONNECTIONS, MAX_LINE_LENGTH, SEND_TIMEOUT

logger = logging.getLogger(__name__)


class ClientSession:
	"""客户端会话，封装连接与连接 id"""

	def __init__(
		self,
		conn: socket.socket,
		addr: Tuple[str, int],
		session_id: Optional[str] = None,
		send_timeout: Optional[float] = SEND_TIMEOUT,
	):
		self.conn = conn
		# // 发送超时：对端不读时 sendall 不会一直占着 Dispatcher 的锁
		self.conn.settimeout(send_timeout)
		self.addr = addr
		self.id = session_id or str(uuid.uuid4())
		self._recv_buffer = bytearray()
		self._discarding = False
		self.closed = False

	def send_text(self, text: str) -> None:
		"""发送一行文本；失败时关闭连接，由接收循环走断开流程。"""
		if self.closed:
			return
		try:
			self.conn.sendall((text + "\n").encode("utf-8"))
		except OSError as e:
			logger.warning(f"发送失败 {self.id}: {e}")
			self.close()

	def feed(self, data: bytes) -> List[bytes]:
		"""追加收到的字节，返回其中完整的行（不含换行符）。

		超过 MAX_LINE_LENGTH 仍未结束的行整行丢弃，直到下一个换行符。
		"""
		self._recv_buffer.extend(data)
		lines = []
		while True:
			try:
				idx = self._recv_buffer.index(ord("\n"))
			except ValueError:
				break
			line = bytes(self._recv_buffer[:idx])
			del self._recv_buffer[: idx + 1]
			if self._discarding or len(line) > MAX_LINE_LENGTH:
				self._discarding = False
				continue
			lines.append(line)
		if len(self._recv_buffer) > MAX_LINE_LENGTH:
			logger.debug(f"丢弃超长消息 from={self.id}: {len(self._recv_buffer)} 字节")
			self._recv_buffer.clear()
			self._discarding = True
		return lines

	def close(self) -> None:
		if self.closed:
			return
		self.closed = True
		try:
			self.conn.shutdown(socket.SHUT_RDWR)
		except OSError:
			pass
		self.conn.close()


class ConnectionRegistry:
	"""连接 id -> 会话"""

	def __init__(self, capacity: int = MAX_CONNECTIONS):
		self.capacity = capacity
		self._sessions: Dict[str, ClientSession] = {}

	def add(self, sess: ClientSession) -> None:
		self._sessions[sess.id] = sess

	def remove(self, conn_id: str) -> Optional[ClientSession]:
		return self._sessions.pop(conn_id, None)

	def get(self, conn_id: str) -> Optional[ClientSession]:
		return self._sessions.get(conn_id)

	def ids(self) -> List[str]:
		return list(self._sessions)

	def is_full(self) -> bool:
		return len(self._sessions) >= self.capacity

	def close_all(self) -> None:
		for sess in list(self._sessions.values()):
			sess.close()
		self._sessions.clear()

	def __contains__(self, conn_id: object) -> bool:
		return conn_id in self._sessions

	def __len__(self) -> int:
		return len(self._sessions)


__all__ = ["ClientSession", "ConnectionRegistry"]

"""
网络通信模块

处理 Socket 连接、按行收发 JSON 消息，并把消息交给 Dispatcher。
"""

from __future__ import annotations

import logging
import socket
import threading
from typing import Optional, Tuple

from cardtable.shared.constants import BUFFER_SIZE, DEFAULT_HOST, DEFAULT_PORT, SEND_TIMEOUT
from cardtable.server.network.dispatcher import Dispatcher
from cardtable.server.network.registry import ClientSession, ConnectionRegistry

logger = logging.getLogger(__name__)


class NetworkServer:
	"""网络服务器，负责接入连接并为每个连接启动收发线程"""

	def __init__(
		self,
		host: str = DEFAULT_HOST,
		port: int = DEFAULT_PORT,
		dispatcher: Optional[Dispatcher] = None,
		send_timeout: float = SEND_TIMEOUT,
	):
		self.host = host
		self.port = port
		self.send_timeout = send_timeout
		self.dispatcher = dispatcher if dispatcher is not None else Dispatcher()
		self._sock: Optional[socket.socket] = None
		self._accept_thread: Optional[threading.Thread] = None
		self._running = threading.Event()

	@property
	def address(self) -> Tuple[str, int]:
		return self.host, self.port

	# 服务器生命周期
	def start(self) -> None:
		"""绑定端口并启动 Accept 线程；port 为 0 时由系统分配。"""
		self._sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
		# // 允许快速重启服务
		self._sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
		self._sock.bind((self.host, self.port))
		self._sock.listen(32)
		self.port = self._sock.getsockname()[1]
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
		self.dispatcher.close_all()

	# 接入与会话线程
	def _accept_loop(self) -> None:
		"""Accept 新连接并为其创建会话线程；连接数已满时立即断开"""
		while self._running.is_set():
			try:
				conn, addr = self._sock.accept()  # type: ignore[union-attr]
			except OSError:
				# // 套接字已关闭或出错，退出循环
				break
			sess = ClientSession(conn, addr, send_timeout=self.send_timeout)
			if not self.dispatcher.connect(sess):
				sess.close()
				continue
			t = threading.Thread(target=self._session_loop, args=(sess,), name=f"session-{sess.id[:8]}", daemon=True)
			t.start()

	def _session_loop(self, sess: ClientSession) -> None:
		"""单会话接收循环：按行（\n）读取 JSON 消息并分发"""
		try:
			while self._running.is_set() and not sess.closed:
				try:
					data = sess.conn.recv(BUFFER_SIZE)
				except socket.timeout:
					# // 超时只针对发送，空闲连接继续等待
					continue
				if not data:
					break
				for raw in sess.feed(data):
					self.dispatcher.handle_raw(sess.id, raw)
		except OSError:
			pass
		except Exception:
			logger.error(f"会话 {sess.id} 异常", exc_info=True)
		finally:
			self.dispatcher.disconnect(sess.id)
			sess.close()


__all__ = [
	"ClientSession",
	"ConnectionRegistry",
	"Dispatcher",
	"NetworkServer",
]

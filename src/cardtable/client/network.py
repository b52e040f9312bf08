"""
简单的客户端网络封装：负责连接服务器、收发消息并提供事件队列。
"""
from __future__ import annotations

import json
import socket
import threading
import time
from queue import Empty, SimpleQueue
from typing import Any, Callable, Dict, Optional, Sequence

from cardtable.shared.constants import (
    BUFFER_SIZE,
    DEFAULT_HOST,
    DEFAULT_PORT,
    INIT_ACK,
    MSG_DEAL,
    MSG_DRAW,
    MSG_HEARTBEAT,
    MSG_INIT,
    MSG_NEW_ROUND,
    MSG_PICKUP,
    MSG_REARRANGE,
    MSG_REARRANGE_SURFACE,
    MSG_SIT,
    MSG_TURN,
    MSG_UNDO,
    MSG_UPDATE,
)
from cardtable.shared.protocols import Message, ProtocolError


class NetworkClient:
    """线程驱动的轻量客户端：发送牌桌操作，接收快照。"""

    def __init__(self, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT) -> None:
        self.host = host
        self.port = port
        self.sock: Optional[socket.socket] = None
        self._recv_thread: Optional[threading.Thread] = None
        self._running = threading.Event()
        self._buf = bytearray()
        self._lock = threading.Lock()
        self.events: SimpleQueue[Message] = SimpleQueue()
        self.player_name: Optional[str] = None
        self._latest: Optional[Dict[str, Any]] = None

    @property
    def connected(self) -> bool:
        return bool(self.sock) and self._running.is_set()

    def connect(self, player_name: str, timeout: float = 5.0) -> bool:
        """连接服务器并以 player_name 加入牌桌。"""
        if self.connected:
            return True
        self.player_name = player_name
        try:
            self.sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
            # 设置连接超时
            self.sock.settimeout(timeout)
            self.sock.connect((self.host, self.port))
            # 连接成功后取消超时
            self.sock.settimeout(None)
            self._running.set()
            self._recv_thread = threading.Thread(target=self._recv_loop, name="client-recv", daemon=True)
            self._recv_thread.start()
            self._send(Message(MSG_INIT, player_name))
            return True
        except OSError as e:
            print(f"连接失败: {e}")
            self.close()
            return False

    # 牌桌操作
    def heartbeat(self) -> None:
        self._send(Message(MSG_HEARTBEAT))

    def sit(self, target: Optional[str] = None) -> None:
        """入座；target 为离线座位的 id 时接管该座位"""
        self._send(Message(MSG_SIT, target))

    def deal(self, mode: Any = 13) -> None:
        self._send(Message(MSG_DEAL, mode))

    def draw(self) -> None:
        self._send(Message(MSG_DRAW))

    def play(self, cards: Sequence[str], x: Optional[float] = None, y: Optional[float] = None) -> None:
        payload: Dict[str, Any] = {"cards": list(cards)}
        if x is not None and y is not None:
            payload["x"] = x
            payload["y"] = y
        self._send(Message(MSG_TURN, payload))

    def move_turn(self, turn_id: str, x: float, y: float) -> None:
        self._send(Message(MSG_REARRANGE_SURFACE, {"turnId": turn_id, "x": x, "y": y}))

    def pickup(self, turn_ids: Sequence[str], index: int) -> None:
        self._send(Message(MSG_PICKUP, {"turnIds": list(turn_ids), "index": index}))

    def rearrange(self, cards: Sequence[str]) -> None:
        self._send(Message(MSG_REARRANGE, list(cards)))

    def undo(self) -> None:
        self._send(Message(MSG_UNDO))

    def new_round(self) -> None:
        self._send(Message(MSG_NEW_ROUND))

    # 事件
    def latest_update(self) -> Optional[Dict[str, Any]]:
        """最近一次收到的快照"""
        with self._lock:
            return self._latest

    def wait_for(self, predicate: Callable[[Message], bool], timeout: float = 2.0) -> Optional[Message]:
        """阻塞等待第一条满足 predicate 的消息，超时返回 None；之前的消息被丢弃。"""
        deadline = time.monotonic() + timeout
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return None
            try:
                msg = self.events.get(timeout=remaining)
            except Empty:
                return None
            if predicate(msg):
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
        sock = self.sock
        try:
            while self._running.is_set() and sock:
                data = sock.recv(BUFFER_SIZE)
                if not data:
                    break
                self._buf.extend(data)
                while True:
                    try:
                        idx = self._buf.index(ord("\n"))
                    except ValueError:
                        break
                    raw = self._buf[:idx]
                    del self._buf[: idx + 1]
                    self._handle_raw(bytes(raw))
        except OSError:
            pass
        finally:
            self.close()

    def _handle_raw(self, raw: bytes) -> None:
        text = raw.decode("utf-8", errors="replace")
        try:
            # 加入确认是裸字符串 "init"
            if json.loads(text) == INIT_ACK:
                self.events.put(Message(INIT_ACK))
                return
            msg = Message.from_json(text)
        except (ValueError, ProtocolError):
            # 忽略无法解析的消息
            return
        if msg.type == MSG_UPDATE and isinstance(msg.data, dict):
            with self._lock:
                self._latest = msg.data
        self.events.put(msg)


__all__ = ["NetworkClient"]

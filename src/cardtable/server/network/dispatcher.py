"""
消息分发

把入站消息解码后调用 GameRoom 的对应操作，并在操作生效后向相关连接推送专属快照。
整个服务器只有这一个串行化点：所有房间操作、登记表变更和快照发送都在同一把锁内完成。
"""

from __future__ import annotations

import json
import logging
import threading
from datetime import datetime, timezone
from typing import Optional

from cardtable.server.game import NOOP, GameRoom, Outcome
from cardtable.server.models import DealMode
from cardtable.server.network.registry import ClientSession, ConnectionRegistry
from cardtable.shared.constants import INIT_ACK, MSG_HEARTBEAT, MSG_UPDATE
from cardtable.shared.protocols import (
	ClientMessage,
	Deal,
	DrawCard,
	Heartbeat,
	Init,
	Message,
	MoveTurn,
	NewRound,
	Pickup,
	PlayTurn,
	ProtocolError,
	Rearrange,
	Sit,
	Undo,
	decode_client_message,
)

logger = logging.getLogger(__name__)


class Dispatcher:
	"""协议分发器：连接生命周期 + 消息路由 + 快照推送"""

	def __init__(self, room: Optional[GameRoom] = None, registry: Optional[ConnectionRegistry] = None):
		self.room = room if room is not None else GameRoom()
		self.registry = registry if registry is not None else ConnectionRegistry()
		self.lock = threading.RLock()

	# 连接生命周期
	def connect(self, sess: ClientSession) -> bool:
		"""登记新连接；已满时返回 False，调用方应立即断开。"""
		with self.lock:
			if self.registry.is_full():
				logger.warning(f"连接数已满 ({self.registry.capacity})，拒绝 {sess.id}")
				return False
			self.registry.add(sess)
			logger.info(f"连接建立: {sess.id}")
			return True

	def disconnect(self, conn_id: str) -> None:
		with self.lock:
			if self.registry.remove(conn_id) is None:
				return
			logger.info(f"连接断开: {conn_id}")
			self.publish(self.room.leave(conn_id))

	def close_all(self) -> None:
		with self.lock:
			self.registry.close_all()

	# 消息处理
	def handle_raw(self, conn_id: str, raw: bytes) -> Outcome:
		"""原始字节 -> JSON -> 入站消息并分发；非法消息静默丢弃。"""
		try:
			text = raw.decode("utf-8")
			msg = decode_client_message(Message.from_json(text))
		except (UnicodeDecodeError, ProtocolError) as e:
			logger.debug(f"丢弃非法消息 from={conn_id}: {e}")
			return NOOP
		return self.dispatch(conn_id, msg)

	def dispatch(self, conn_id: str, msg: ClientMessage) -> Outcome:
		"""根据消息类型调用房间操作；生效时推送快照。"""
		with self.lock:
			sess = self.registry.get(conn_id)
			if sess is None:
				return NOOP

			room = self.room
			if isinstance(msg, Heartbeat):
				reply = Message(MSG_HEARTBEAT, datetime.now(timezone.utc).isoformat())
				sess.send_text(reply.to_json())
				return NOOP
			if isinstance(msg, Init):
				outcome = room.join(conn_id, msg.name)
				if outcome:
					sess.send_text(json.dumps(INIT_ACK))
			elif isinstance(msg, Sit):
				outcome = room.sit(conn_id, msg.target)
			elif isinstance(msg, Deal):
				outcome = room.deal(DealMode(msg.mode))
			elif isinstance(msg, DrawCard):
				outcome = room.draw(conn_id)
			elif isinstance(msg, PlayTurn):
				outcome = room.take_turn(conn_id, msg.cards, msg.x, msg.y)
			elif isinstance(msg, MoveTurn):
				outcome = room.move_turn(conn_id, msg.turn_id, msg.x, msg.y)
			elif isinstance(msg, Pickup):
				outcome = room.pickup(conn_id, msg.turn_ids, msg.index)
			elif isinstance(msg, Rearrange):
				outcome = room.rearrange(conn_id, msg.cards)
			elif isinstance(msg, Undo):
				outcome = room.undo(conn_id)
			elif isinstance(msg, NewRound):
				outcome = room.new_round()
			else:
				raise TypeError(f"unhandled message: {msg!r}")

			if outcome:
				logger.info(f"{type(msg).__name__} from={conn_id} 已生效")
			else:
				logger.debug(f"{type(msg).__name__} from={conn_id} 被忽略")
			self.publish(outcome)
			return outcome

	# 推送
	def publish(self, outcome: Outcome) -> None:
		"""按 Outcome 推送专属快照：单播给 outcome.only，否则所有连接。"""
		if not outcome:
			return
		with self.lock:
			targets = [outcome.only] if outcome.only else self.registry.ids()
			for conn_id in targets:
				sess = self.registry.get(conn_id)
				if sess is None:
					continue
				update = Message(MSG_UPDATE, self.room.snapshot_for(conn_id))
				sess.send_text(update.to_json())


__all__ = ["Dispatcher"]

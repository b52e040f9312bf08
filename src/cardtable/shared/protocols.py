"""
协议定义

基于 JSON 的消息信封 ``{"type": str, "data": any}``，按行分隔传输。
服务器端入站消息在边界处被解码为封闭的消息类型集合（见 ClientMessage），
解码失败统一抛出 ProtocolError，由调用方静默丢弃。
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Optional, Tuple, Union

from cardtable.shared.constants import (
    DEAL_TOKENS_REDUCED,
    DEAL_TOKENS_STANDARD,
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
)

logger = logging.getLogger(__name__)


class ProtocolError(ValueError):
    """消息格式非法或负载不合法。"""


def _require(condition: bool, msg: str) -> None:
    if not condition:
        logger.debug(f"ProtocolError: {msg}")
        raise ProtocolError(msg)


class Message:
    """消息信封"""

    def __init__(self, msg_type: str, data: Any = None):
        self.type = msg_type
        self.data = data

    def to_json(self) -> str:
        payload = {"type": self.type}
        if self.data is not None:
            payload["data"] = self.data
        return json.dumps(payload, ensure_ascii=False)

    @classmethod
    def from_json(cls, json_str: str) -> "Message":
        try:
            obj = json.loads(json_str)
        except (ValueError, RecursionError) as e:
            # 含 JSONDecodeError、超长整数与过深嵌套
            raise ProtocolError(f"invalid json: {e}") from e
        _require(isinstance(obj, dict), "envelope must be an object")
        _require(isinstance(obj.get("type"), str), "envelope missing type")
        return cls(obj["type"], obj.get("data"))

    def __repr__(self) -> str:
        return f"Message({self.type!r}, {self.data!r})"


# -------------------------
# 入站消息（客户端 -> 服务器）
# -------------------------
@dataclass(frozen=True)
class Heartbeat:
    pass


@dataclass(frozen=True)
class Init:
    name: str


@dataclass(frozen=True)
class Sit:
    target: Optional[str] = None


@dataclass(frozen=True)
class Deal:
    mode: str  # DealMode 的取值，避免 shared 依赖 server


@dataclass(frozen=True)
class DrawCard:
    pass


@dataclass(frozen=True)
class PlayTurn:
    cards: Tuple[str, ...]
    x: Optional[float] = None
    y: Optional[float] = None


@dataclass(frozen=True)
class MoveTurn:
    turn_id: str
    x: float
    y: float


@dataclass(frozen=True)
class Pickup:
    turn_ids: Tuple[str, ...]
    index: int


@dataclass(frozen=True)
class Rearrange:
    cards: Tuple[str, ...]


@dataclass(frozen=True)
class Undo:
    pass


@dataclass(frozen=True)
class NewRound:
    pass


ClientMessage = Union[
    Heartbeat, Init, Sit, Deal, DrawCard, PlayTurn, MoveTurn, Pickup, Rearrange, Undo, NewRound
]

DEAL_MODE_STANDARD = "standard"
DEAL_MODE_REDUCED = "reduced"


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _card_list(value: Any, what: str) -> Tuple[str, ...]:
    _require(isinstance(value, list), f"{what} must be a list")
    _require(all(isinstance(c, str) for c in value), f"{what} must contain strings")
    return tuple(value)


def _decode_deal(data: Any) -> Deal:
    _require(data is not None and not isinstance(data, bool), "deal mode missing")
    token = str(data).strip().lower()
    if token in DEAL_TOKENS_STANDARD:
        return Deal(DEAL_MODE_STANDARD)
    if token in DEAL_TOKENS_REDUCED:
        return Deal(DEAL_MODE_REDUCED)
    raise ProtocolError(f"unknown deal mode: {data!r}")


def _decode_turn(data: Any) -> PlayTurn:
    # 兼容直接发送牌列表的旧客户端
    if isinstance(data, list):
        return PlayTurn(_card_list(data, "cards"))
    _require(isinstance(data, dict), "turn payload must be an object")
    cards = _card_list(data.get("cards"), "cards")
    x, y = data.get("x"), data.get("y")
    if x is None and y is None:
        return PlayTurn(cards)
    _require(_is_number(x) and _is_number(y), "turn placement must be numeric")
    return PlayTurn(cards, float(x), float(y))


def _decode_move(data: Any) -> MoveTurn:
    _require(isinstance(data, dict), "rearrangesurface payload must be an object")
    turn_id = data.get("turnId")
    _require(isinstance(turn_id, str), "turnId must be a string")
    x, y = data.get("x"), data.get("y")
    _require(_is_number(x) and _is_number(y), "placement must be numeric")
    return MoveTurn(turn_id, float(x), float(y))


def _decode_pickup(data: Any) -> Pickup:
    _require(isinstance(data, dict), "pickup payload must be an object")
    turn_ids = _card_list(data.get("turnIds"), "turnIds")
    index = data.get("index")
    _require(isinstance(index, int) and not isinstance(index, bool), "index must be an integer")
    return Pickup(turn_ids, index)


def _decode_sit(data: Any) -> Sit:
    if data is None:
        return Sit()
    _require(isinstance(data, str), "sit target must be a string")
    return Sit(data or None)


def _decode_init(data: Any) -> Init:
    _require(isinstance(data, str), "init name must be a string")
    return Init(data)


def decode_client_message(msg: Message) -> ClientMessage:
    """将信封解码为具体的入站消息，非法时抛出 ProtocolError。"""
    t, data = msg.type, msg.data
    if t == MSG_HEARTBEAT:
        return Heartbeat()
    if t == MSG_INIT:
        return _decode_init(data)
    if t == MSG_SIT:
        return _decode_sit(data)
    if t == MSG_DEAL:
        return _decode_deal(data)
    if t == MSG_DRAW:
        return DrawCard()
    if t == MSG_TURN:
        return _decode_turn(data)
    if t == MSG_REARRANGE_SURFACE:
        return _decode_move(data)
    if t == MSG_PICKUP:
        return _decode_pickup(data)
    if t == MSG_REARRANGE:
        return Rearrange(_card_list(data, "rearrange"))
    if t == MSG_UNDO:
        return Undo()
    if t == MSG_NEW_ROUND:
        return NewRound()
    raise ProtocolError(f"unknown type: {t}")


__all__ = [
    "ProtocolError",
    "Message",
    "ClientMessage",
    "Heartbeat",
    "Init",
    "Sit",
    "Deal",
    "DrawCard",
    "PlayTurn",
    "MoveTurn",
    "Pickup",
    "Rearrange",
    "Undo",
    "NewRound",
    "DEAL_MODE_STANDARD",
    "DEAL_MODE_REDUCED",
    "decode_client_message",
]

"""
数据模型

牌组（Deck）、玩家（Player）与桌面出牌（Turn），以及各自的序列化方法。
牌用字符串标识 ``{花色}{点数}``，例如 ``"C5"``、``"H13"``。
"""

from __future__ import annotations

import random
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from cardtable.shared.constants import (
    RANKS,
    REDUCED_EXCLUDED_RANKS,
    REDUCED_HAND_SIZE,
    STANDARD_HAND_SIZE,
    SUITS,
)
from cardtable.shared.protocols import DEAL_MODE_REDUCED, DEAL_MODE_STANDARD


class DealMode(Enum):
    """发牌模式"""

    STANDARD = DEAL_MODE_STANDARD
    REDUCED = DEAL_MODE_REDUCED

    @property
    def hand_size(self) -> int:
        return STANDARD_HAND_SIZE if self is DealMode.STANDARD else REDUCED_HAND_SIZE

    @property
    def shows_last(self) -> bool:
        """是否公开最后一张（牌堆底）的牌"""
        return self is DealMode.REDUCED


def universe(mode: DealMode = DealMode.STANDARD) -> List[str]:
    """返回该模式下的完整牌集（未洗）。"""
    cards = []
    for suit in SUITS:
        for rank in RANKS:
            if mode is DealMode.REDUCED and rank in REDUCED_EXCLUDED_RANKS:
                continue
            cards.append(f"{suit}{rank}")
    return cards


class Deck:
    """一副洗好的牌，从尾部摸牌。"""

    def __init__(self, mode: DealMode = DealMode.STANDARD, rng: Optional[random.Random] = None):
        self.mode = mode
        self._cards: List[str] = universe(mode)
        # random.shuffle 为 Fisher-Yates，无偏
        (rng or random).shuffle(self._cards)

    def __len__(self) -> int:
        return len(self._cards)

    def remaining(self) -> int:
        return len(self._cards)

    def draw(self, count: int = 1) -> List[str]:
        """从尾部取走 count 张牌。

        剩余不足时截断：返回全部剩余的牌，不报错，也不会凭空造牌。
        """
        if count <= 0:
            return []
        drawn = self._cards[-count:]
        del self._cards[-count:]
        return drawn

    def remove(self, cards: Iterable[str]) -> None:
        """移出指定的牌（彩蛋发牌用），不在牌堆中的忽略。"""
        wanted = set(cards)
        self._cards = [c for c in self._cards if c not in wanted]

    def peek_last(self) -> Optional[str]:
        """最后才会被摸到的那张牌（牌堆底）。"""
        return self._cards[0] if self._cards else None

    def cards(self) -> List[str]:
        return list(self._cards)

    def summary(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"count": len(self._cards)}
        if self.mode.shows_last and self._cards:
            payload["last"] = self.peek_last()
        return payload


class Player:
    """玩家（每个连接一个）"""

    def __init__(self, player_id: str, name: str):
        self.id = player_id
        self.name = name
        self.hand: List[str] = []
        self.abandoned = False

    def abandon(self) -> None:
        self.abandoned = True

    def set_hand(self, cards: Sequence[str]) -> None:
        self.hand = list(cards)

    def play_cards(self, requested: Iterable[str]) -> List[str]:
        """打出手里有的牌，按请求顺序返回；重复或不在手里的牌直接忽略。"""
        played: List[str] = []
        for card in requested:
            if card in self.hand and card not in played:
                self.hand.remove(card)
                played.append(card)
        return played

    def take_cards(self, cards: Sequence[str], index: Optional[int] = None) -> None:
        """把牌放回手里；index 为空时追加到末尾，越界时截到两端。"""
        if index is None:
            self.hand.extend(cards)
            return
        index = max(0, min(index, len(self.hand)))
        self.hand[index:index] = list(cards)

    def rearrange(self, new_order: Sequence[str]) -> bool:
        """仅当 new_order 恰好是当前手牌的一个排列时才生效。"""
        if sorted(new_order) != sorted(self.hand):
            return False
        self.hand = list(new_order)
        return True

    def self_payload(self) -> Dict[str, Any]:
        return {"name": self.name, "hand": list(self.hand)}

    def observer_payload(self, position: int) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "name": self.name,
            "cardCount": len(self.hand),
            "position": position,
        }
        # 仅离线座位暴露 id，供他人 sit 接管
        if self.abandoned:
            payload["id"] = self.id
        return payload

    def __repr__(self) -> str:
        return f"Player({self.id!r}, {self.name!r}, cards={len(self.hand)})"


class Turn:
    """桌面上的一次出牌"""

    def __init__(self, player_id: str, cards: Sequence[str], x: Optional[float] = None, y: Optional[float] = None):
        self.player_id = player_id
        self.cards: Tuple[str, ...] = tuple(cards)
        self.x = x
        self.y = y

    @property
    def id(self) -> str:
        return "-".join(self.cards)

    @property
    def placed(self) -> bool:
        return self.x is not None and self.y is not None

    def move(self, x: float, y: float) -> None:
        self.x = x
        self.y = y

    def to_payload(self, position: Optional[int]) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": self.id,
            "cards": list(self.cards),
            "position": position,
        }
        if self.placed:
            payload["x"] = self.x
            payload["y"] = self.y
        return payload

    def __repr__(self) -> str:
        return f"Turn({self.player_id!r}, {list(self.cards)!r})"


__all__ = ["DealMode", "Deck", "Player", "Turn", "universe"]

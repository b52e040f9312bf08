import logging
import random
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence

from cardtable.server.models import DealMode, Deck, Player, Turn
from cardtable.shared.constants import (
    EASTER_HANDS,
    EASTER_NAMES,
    MAX_ACTIVE_PLAYERS,
    MAX_NAME_LENGTH,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Outcome:
    """操作结果：是否生效，以及（单播时）唯一需要通知的连接。"""

    applied: bool
    only: Optional[str] = None

    def __bool__(self) -> bool:
        return self.applied


APPLIED = Outcome(True)
NOOP = Outcome(False)


class GameRoom:
    """
    牌桌房间：唯一持有座位、手牌、桌面、牌堆的权威状态。

    所有操作同步完成，不做任何 I/O；非法操作一律返回 NOOP，不抛异常。
    调用方负责串行化（见 network.Dispatcher）以及根据 Outcome 推送快照。
    """

    def __init__(self, max_seats: int = MAX_ACTIVE_PLAYERS, rng: Optional[random.Random] = None):
        self.max_seats = max_seats
        self.rng = rng or random.Random()
        self.players: Dict[str, Player] = {}
        self.active: List[str] = []  # 座位顺序即加入顺序
        self.lurkers: List[str] = []
        self.round: List[Turn] = []
        self.graveyard: List[List[Turn]] = []
        self.deck: Optional[Deck] = None
        self.started = False

    # 查询
    def is_active(self, player_id: str) -> bool:
        return player_id in self.active

    def _active_player(self, player_id: str) -> Optional[Player]:
        if not self.is_active(player_id):
            return None
        return self.players.get(player_id)

    def _has_free_seat(self) -> bool:
        return len(self.active) < self.max_seats

    # 座位与连接
    def join(self, player_id: str, name: str) -> Outcome:
        """新连接加入：有空位且尚未发过牌则入座，否则进入旁观队列。"""
        if player_id in self.players:
            return NOOP
        name = name.strip()[:MAX_NAME_LENGTH] or f"Player-{player_id[:4]}"
        self.players[player_id] = Player(player_id, name)
        if self._has_free_seat() and not self.started:
            self.active.append(player_id)
            logger.info(f"{name} ({player_id}) 入座，座位 {len(self.active) - 1}")
        else:
            self.lurkers.append(player_id)
            logger.info(f"{name} ({player_id}) 进入旁观")
        return APPLIED

    def sit(self, player_id: str, target: Optional[str] = None) -> Outcome:
        """旁观者入座：空座位，或接管一个离线座位。"""
        player = self.players.get(player_id)
        if player is None or self.is_active(player_id):
            logger.debug(f"{player_id} 无法入座：{'不存在' if player is None else '已在座'}")
            return NOOP

        if not target:
            if not self._has_free_seat():
                return NOOP
            self.active.append(player_id)
            self._dequeue_lurker(player_id)
            logger.info(f"{player.name} 入座空位")
            return APPLIED

        abandoned = self.players.get(target)
        if abandoned is None or not abandoned.abandoned or not self.is_active(target):
            logger.debug(f"{player_id} 试图入座非离线座位 {target}")
            return NOOP

        # 接管离线座位：手牌、历史出牌归属、座位序号
        player.set_hand(abandoned.hand)
        for turns in [self.round, *self.graveyard]:
            for turn in turns:
                if turn.player_id == target:
                    turn.player_id = player_id
        self.active[self.active.index(target)] = player_id
        del self.players[target]
        self._dequeue_lurker(player_id)
        logger.info(f"{player.name} 接管了 {abandoned.name} 的座位")
        return APPLIED

    def leave(self, player_id: str) -> Outcome:
        """连接断开：在座者保留座位与手牌，旁观者直接移除。"""
        player = self.players.get(player_id)
        if player is None:
            return NOOP
        if self.is_active(player_id):
            player.abandon()
            logger.info(f"{player.name} 离线，座位保留")
        else:
            self._remove_player(player_id)
        return APPLIED

    def _dequeue_lurker(self, player_id: str) -> None:
        if player_id in self.lurkers:
            self.lurkers.remove(player_id)

    def _remove_player(self, player_id: str) -> None:
        logger.info(f"移除玩家: {player_id}")
        self.players.pop(player_id, None)
        self._dequeue_lurker(player_id)
        if player_id in self.active:
            self.active.remove(player_id)

    # 发牌
    def deal(self, mode: DealMode = DealMode.STANDARD) -> Outcome:
        """开新局：清掉离线座位，重置桌面与弃牌区，按座位顺序发牌。"""
        for player_id in list(self.active):
            if self.players[player_id].abandoned:
                self._remove_player(player_id)
        if not self.active:
            return NOOP

        self.started = True
        self.round = []
        self.graveyard = []
        self.deck = Deck(mode, self.rng)

        lucky = self._find_lucky(mode)
        if lucky is not None:
            hand = self.rng.choice(EASTER_HANDS)
            # 先把预设手牌移出牌堆，其他人再摸，避免重复
            self.deck.remove(hand)
            self.players[lucky].set_hand(hand)
            logger.info(f"彩蛋发牌: {self.players[lucky].name}")

        for player_id in self.active:
            if player_id == lucky:
                continue
            self.players[player_id].set_hand(self.deck.draw(mode.hand_size))
        logger.info(f"发牌完成: mode={mode.value}, 座位数={len(self.active)}, 牌堆剩余={len(self.deck)}")
        return APPLIED

    def _find_lucky(self, mode: DealMode) -> Optional[str]:
        if mode is not DealMode.STANDARD:
            return None
        for player_id in self.active:
            if self.players[player_id].name.lower() in EASTER_NAMES:
                return player_id
        return None

    # 出牌与桌面
    def take_turn(self, player_id: str, cards: Sequence[str], x: Optional[float] = None, y: Optional[float] = None) -> Outcome:
        player = self._active_player(player_id)
        if player is None:
            return NOOP
        played = player.play_cards(cards)
        if not played:
            return NOOP
        self.round.append(Turn(player_id, played, x, y))
        return APPLIED

    def move_turn(self, player_id: str, turn_id: str, x: float, y: float) -> Outcome:
        if self._active_player(player_id) is None:
            return NOOP
        turn = self._find_turn(turn_id)
        if turn is None:
            return NOOP
        turn.move(x, y)
        return APPLIED

    def pickup(self, player_id: str, turn_ids: Iterable[str], index: int) -> Outcome:
        """把桌面上指定的几手牌按桌面顺序收回手里的 index 处。"""
        player = self._active_player(player_id)
        if player is None:
            return NOOP
        wanted = set(turn_ids)
        taken = [t for t in self.round if t.id in wanted]
        if not taken:
            return NOOP
        self.round = [t for t in self.round if t.id not in wanted]
        cards: List[str] = []
        for turn in taken:
            cards.extend(turn.cards)
        player.take_cards(cards, index)
        return APPLIED

    def draw(self, player_id: str) -> Outcome:
        player = self._active_player(player_id)
        if player is None or not self.deck:
            return NOOP
        player.take_cards(self.deck.draw(1))
        return APPLIED

    def rearrange(self, player_id: str, cards: Sequence[str]) -> Outcome:
        player = self.players.get(player_id)
        if player is None or not player.rearrange(cards):
            return NOOP
        # 仅影响自己的视图
        return Outcome(True, only=player_id)

    def undo(self, player_id: str) -> Outcome:
        if not self.round or self.round[-1].player_id != player_id:
            return NOOP
        player = self.players.get(player_id)
        if player is None:
            return NOOP
        turn = self.round.pop()
        player.take_cards(turn.cards)
        return APPLIED

    def new_round(self) -> Outcome:
        if not self.round:
            return NOOP
        self.graveyard.append(self.round)
        self.round = []
        return APPLIED

    def _find_turn(self, turn_id: str) -> Optional[Turn]:
        for turn in self.round:
            if turn.id == turn_id:
                return turn
        return None

    # 快照
    def position_of(self, seat_index: int, self_index: int) -> int:
        """把绝对座位号换算成相对观察者的位置；自己固定在 max_seats - 1。"""
        return (self.max_seats + (seat_index - self_index - 1)) % self.max_seats

    def snapshot_for(self, viewer_id: str) -> Dict[str, Any]:
        """为某个连接生成专属视图：只有自己的手牌可见。"""
        self_index = self.active.index(viewer_id) if viewer_id in self.active else -1
        positions: Dict[str, int] = {}
        me: Optional[Dict[str, Any]] = None
        opponents: List[Dict[str, Any]] = []
        for i, player_id in enumerate(self.active):
            position = self.position_of(i, self_index)
            positions[player_id] = position
            player = self.players[player_id]
            if i == self_index:
                me = player.self_payload()
            else:
                opponents.append(player.observer_payload(position))

        return {
            "player": me,
            "opponents": opponents,
            "lurkers": [self.players[pid].name for pid in self.lurkers if pid != viewer_id],
            "round": [turn.to_payload(positions.get(turn.player_id)) for turn in self.round],
            "graveyard": len(self.graveyard),
            "deck": self.deck.summary() if self.deck is not None else {"count": 0},
            "canUndo": bool(self.round) and self.round[-1].player_id == viewer_id,
        }

    def card_census(self) -> List[str]:
        """当前所有位置上的牌（手牌、牌堆、桌面、弃牌区），用于守恒检查。"""
        cards: List[str] = []
        for player in self.players.values():
            cards.extend(player.hand)
        if self.deck:
            cards.extend(self.deck.cards())
        for turns in [self.round, *self.graveyard]:
            for turn in turns:
                cards.extend(turn.cards)
        return cards

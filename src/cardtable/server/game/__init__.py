"""
游戏逻辑模块

牌桌会话协调器：座位/旁观队列、发牌、出牌、撤销、清桌，以及按观察者生成快照。
"""

from .room import APPLIED, NOOP, GameRoom, Outcome

__all__ = ["GameRoom", "Outcome", "APPLIED", "NOOP"]

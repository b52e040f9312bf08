"""
服务器端模块

负责处理客户端连接、牌桌状态、消息分发等服务器功能。

模块组成：
- game: 牌桌会话协调器（座位、发牌、出牌、撤销、快照）
- models: 牌组/玩家/出牌的数据模型与序列化
- network: TCP 会话、连接登记表、消息分发与广播

使用方式：
- 入口参见 cardtable/server/main.py，启动 NetworkServer 并绑定 GameRoom
"""

from . import game, models, network

__all__ = ["game", "models", "network"]

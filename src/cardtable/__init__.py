"""
Card Table - 多人联机牌桌

A real-time multiplayer card table: clients join a shared table over
line-delimited JSON connections and play cards freely; the server keeps the
authoritative state.
"""

__version__ = "0.1.0"
__author__ = "Card Table Team"
__license__ = "MIT"

# 导出主要组件
from . import client, server, shared

__all__ = ["client", "server", "shared", "__version__"]

"""
客户端模块

负责与服务器通信，以及一个用于调试协议的控制台客户端。

模块组成：
- network: 行分隔 JSON 的网络客户端（发送牌桌操作、接收快照）
- main: 控制台客户端入口

入口提示：
- 运行 cardtable/client/main.py 启动控制台客户端
- 与服务器通信基于行分隔 JSON（Message.to_json() + "\n"）
"""

from . import network

__all__ = ["network"]

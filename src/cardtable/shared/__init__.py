"""
共享模块

存放客户端和服务器共用的代码，如常量、协议定义等。

组件说明：
- constants: 网络端口、座位上限、牌组配置、消息类型
- protocols: 基于 JSON 的消息信封（Message）与入站消息的封闭类型集合

提示：
- 协议层约定按行分隔的 JSON 串，网络层直接透传 Message.to_json() + "\n"
- 若新增公共工具，可在此模块下添加并在 __all__ 中显式导出
"""

from . import constants, protocols

__all__ = ["constants", "protocols"]

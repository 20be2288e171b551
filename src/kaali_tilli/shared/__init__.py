"""
共享模块

存放客户端和服务器共用的代码。

组件说明：
- constants: 网络端口、牌局参数、消息类型
- protocols: 基于 JSON 的消息格式（Message）

提示：
- 协议层约定按行分隔的 JSON 串，网络层直接透传 Message.to_json() + "\\n"
"""

from . import constants, protocols

__all__ = ["constants", "protocols"]

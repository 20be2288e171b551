"""
服务器端模块

负责处理客户端连接、房间管理和牌局逻辑。

模块组成：
- errors: 错误类型
- game: 牌、牌局状态机、房间与房间管理
- network: TCP 会话与消息收发

使用方式：
- 入口参见 kaali_tilli/server/main.py，启动 NetworkServer 并绑定 RoomManager
"""

from . import errors, game, network

__all__ = ["errors", "game", "network"]

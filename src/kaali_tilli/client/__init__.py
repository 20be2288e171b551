"""
客户端模块

提供连接牌局服务器的轻量网络客户端，界面不在本项目范围内。
"""

from . import network

__all__ = ["network"]

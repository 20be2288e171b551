"""
Kaali Tilli - 五到七人的叫分找伙伴联机纸牌游戏

A server-authoritative multiplayer trick-taking card game.
"""

__version__ = "0.1.0"
__author__ = "Kaali Tilli Team"
__license__ = "MIT"

# 导出主要组件
from . import client, server, shared

__all__ = ["client", "server", "shared", "__version__"]

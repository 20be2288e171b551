"""
消息协议

客户端与服务器之间交换的消息统一为 ``{"type": ..., "data": ...}`` 的 JSON 对象，
网络层按行（\\n）分隔，每行一条消息。
"""

from __future__ import annotations

import json
from typing import Any, Dict, Optional


class Message:
    """一条协议消息"""

    def __init__(self, msg_type: str, data: Optional[Any] = None):
        self.type = msg_type
        self.data = {} if data is None else data

    def to_json(self) -> str:
        return json.dumps({"type": self.type, "data": self.data}, ensure_ascii=False)

    @classmethod
    def from_json(cls, json_str: str) -> "Message":
        """解析一行 JSON；格式不对时抛出 ValueError。"""
        obj = json.loads(json_str)
        if not isinstance(obj, dict) or not isinstance(obj.get("type"), str):
            raise ValueError("message must be an object with a string 'type'")
        return cls(obj["type"], obj.get("data"))

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "data": self.data}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Message):
            return NotImplemented
        return self.type == other.type and self.data == other.data

    def __repr__(self) -> str:
        return f"Message({self.type!r}, {self.data!r})"


__all__ = ["Message"]

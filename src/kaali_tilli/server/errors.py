"""
错误类型

所有错误都只影响当前这一次操作：房间管理器捕获后只回复给发起者，
进程和房间状态都不受影响。``code`` 字段会原样出现在 error 消息里。
"""


class GameError(Exception):
    """房间/牌局操作失败的基类"""

    code = "GameError"
    default_message = "Action failed"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class RoomNotFound(GameError):
    code = "RoomNotFound"
    default_message = "Room not found"


class NotHost(GameError):
    code = "NotHost"
    default_message = "Only the host can start the game."


class InvalidPlayerCount(GameError):
    code = "InvalidPlayerCount"
    default_message = "Game requires 5 to 7 players to start."


class NotYourTurn(GameError):
    code = "NotYourTurn"
    default_message = "Not your turn"


class TrickLocked(NotYourTurn):
    """一墩已满、正在等待结算时的出牌"""

    default_message = "Trick is being resolved"


class CardNotInHand(GameError):
    code = "CardNotInHand"
    default_message = "Card not in hand"


class IllegalMove(GameError):
    code = "IllegalMove"
    default_message = "Invalid move: Must follow suit or cut"


class NotYourAction(GameError):
    """阶段或身份不允许该操作"""

    code = "NotYourAction"
    default_message = "You cannot do that now"


class InvalidBid(GameError):
    code = "InvalidBid"
    default_message = "Invalid bid"


class InvalidPartnerSelection(GameError):
    code = "InvalidPartnerSelection"
    default_message = "Pick exactly two different cards and a trump suit"


class BadRequest(GameError):
    code = "BadRequest"
    default_message = "Malformed request"


__all__ = [
    "GameError",
    "RoomNotFound",
    "NotHost",
    "InvalidPlayerCount",
    "NotYourTurn",
    "TrickLocked",
    "CardNotInHand",
    "IllegalMove",
    "NotYourAction",
    "InvalidBid",
    "InvalidPartnerSelection",
    "BadRequest",
]

"""
常量定义

定义服务器、客户端和牌局中使用的各种常量。
"""

# 网络配置
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 4000
BUFFER_SIZE = 4096
# 单个连接待发送消息上限，超过说明对端不再读取，直接断开
SEND_QUEUE_LIMIT = 256
LOG_FILE = "server.log"

# 房间配置
ROOM_CODE_LENGTH = 4
ROOM_CODE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
DEFAULT_GAME_ID = "kaali-tilli"
DEV_NAMES = ["Matts", "Pandey", "Sarvesh", "Avi", "DJ", "Baba", "Sid"]

# 牌局配置
MIN_PLAYERS = 5
MAX_PLAYERS = 7
BASE_BID = 150
MAX_BID = 250
TRICK_RESOLVE_DELAY = 2.0  # 秒，一墩打满后展示给所有人的时间

# 各人数下去掉的 "2"（花色列表）
REMOVED_TWOS = {
    5: ["D", "C"],
    6: ["H", "D", "C", "S"],
    7: ["H", "D", "C"],
}

# 消息类型（客户端 -> 服务器）
MSG_CREATE_ROOM = "create-room"
MSG_JOIN_ROOM = "join-room"
MSG_SYNC_ROOM_STATE = "sync-room-state"
MSG_START_GAME = "start-game"
MSG_GAME_ACTION = "game-action"
MSG_DISCONNECT = "disconnect"

# 消息类型（服务器 -> 客户端）
MSG_CONNECTED = "connected"
MSG_ROOM_CREATED = "room-created"
MSG_ROOM_JOINED = "room-joined"
MSG_UPDATE_PLAYERS = "update-players"
MSG_GAME_STATE = "game-state"
MSG_TRICK_WINNER = "trick-winner"
MSG_ERROR = "error"

# game-action 的动作
ACTION_BID = "BID"
ACTION_FINISH_BIDDING = "FINISH_BIDDING"
ACTION_PICK_PARTNERS = "PICK_PARTNERS"
ACTION_PLAY_CARD = "PLAY_CARD"

BID_PASS = "PASS"
BID_DONE = "DONE"

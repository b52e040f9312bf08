"""
常量定义

定义服务器、客户端共用的各种常量。
"""

# 网络配置
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 5555
BUFFER_SIZE = 4096
MAX_LINE_LENGTH = 64 * 1024  # 单行消息上限，超出按非法消息丢弃
SEND_TIMEOUT = 2.0  # 单次发送的超时（秒），超时即断开该连接

# 连接与座位配置
MAX_CONNECTIONS = 8
MAX_ACTIVE_PLAYERS = 4
MAX_NAME_LENGTH = 20

# 牌组配置
SUITS = ["C", "D", "H", "S"]
RANKS = list(range(1, 14))  # 1..13，1 为 A
REDUCED_EXCLUDED_RANKS = (2, 3, 4, 5)  # 精简牌组（杜拉克）去掉的点数
STANDARD_HAND_SIZE = 13
REDUCED_HAND_SIZE = 6

# 彩蛋发牌：名字（小写）-> 权重
EASTER_NAMES = {
    "lucky dog": 1,
    "its my birthday": 1,
    "it's my birthday": 1,
}
EASTER_HANDS = [
    ["C3", "C4", "C5", "D6", "D7", "D8", "H9", "H10", "H11", "S12", "S13", "S1", "S2"],
    ["C3", "H3", "S3", "D13", "H13", "S13", "D1", "H1", "S1", "C2", "D2", "H2", "S2"],
    ["C3", "C13", "D13", "H13", "S13", "C1", "D1", "H1", "S1", "C2", "D2", "H2", "S2"],
    ["C3", "C4", "D4", "H4", "S4", "S6", "S7", "S8", "S9", "C2", "D2", "H2", "S2"],
]

# 消息类型（客户端 -> 服务器）
MSG_HEARTBEAT = "hb"
MSG_INIT = "init"
MSG_SIT = "sit"
MSG_DEAL = "deal"
MSG_DRAW = "draw"
MSG_TURN = "turn"
MSG_REARRANGE_SURFACE = "rearrangesurface"
MSG_PICKUP = "pickup"
MSG_REARRANGE = "rearrange"
MSG_UNDO = "undo"
MSG_NEW_ROUND = "newround"

# 消息类型（服务器 -> 客户端）
MSG_UPDATE = "update"
INIT_ACK = "init"  # 服务器以裸字符串 "init" 确认加入

# 发牌模式口令
DEAL_TOKENS_STANDARD = ("13", "standard")
DEAL_TOKENS_REDUCED = ("д", "6", "reduced", "durak")

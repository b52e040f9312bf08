"""
服务器主程序入口

启动牌桌服务器，监听客户端连接。
"""

import logging
import os
import time

from cardtable.shared.constants import DEFAULT_HOST, DEFAULT_PORT, MAX_CONNECTIONS, SEND_TIMEOUT

logger = logging.getLogger(__name__)


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.environ.get(name, default))
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.environ.get(name, default))
    except ValueError:
        return default


def setup_logging() -> None:
    """配置日志，进程启动时调用一次"""
    level = os.environ.get("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.FileHandler("server.log"), logging.StreamHandler()],
    )


def main():
    """启动服务器主函数"""
    setup_logging()
    # 支持通过环境变量覆盖主机、端口、连接上限与发送超时
    host = os.environ.get("HOST", DEFAULT_HOST)
    port = _env_int("PORT", DEFAULT_PORT)
    max_connections = _env_int("MAX_CONNECTIONS", MAX_CONNECTIONS)
    send_timeout = _env_float("SEND_TIMEOUT", SEND_TIMEOUT)

    logger.info("=" * 50)
    logger.info("Card Table 牌桌服务器启动中...")
    logger.info("=" * 50)

    from cardtable.server.game import GameRoom
    from cardtable.server.network import ConnectionRegistry, Dispatcher, NetworkServer

    dispatcher = Dispatcher(GameRoom(), ConnectionRegistry(max_connections))
    server = NetworkServer(host, port, dispatcher, send_timeout=send_timeout)
    try:
        server.start()
        logger.info("服务器运行中，按 Ctrl+C 停止")
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        logger.info("服务器正在关闭...")
    except Exception as e:
        logger.error(f"服务器错误: {e}", exc_info=True)
    finally:
        server.stop()
        logger.info("服务器已停止")


if __name__ == "__main__":
    main()

"""
服务器主程序入口

启动牌局服务器，监听客户端连接。
"""

import logging
import os
import time

from kaali_tilli.shared.constants import DEFAULT_HOST, DEFAULT_PORT, LOG_FILE, TRICK_RESOLVE_DELAY

logger = logging.getLogger(__name__)


def _env_number(name: str, default, cast=int):
    """读取数值型环境变量，格式不对时退回默认值"""
    try:
        return cast(os.environ.get(name, default))
    except (TypeError, ValueError):
        return default


def setup_logging() -> None:
    level = os.environ.get("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.FileHandler(os.environ.get("LOG_FILE", LOG_FILE)), logging.StreamHandler()],
    )


def main():
    """启动服务器主函数"""
    setup_logging()
    # 支持通过环境变量覆盖主机、端口与结算延时
    host = os.environ.get("HOST", DEFAULT_HOST)
    port = _env_number("PORT", DEFAULT_PORT)
    delay = _env_number("TRICK_RESOLVE_DELAY", TRICK_RESOLVE_DELAY, float)

    logger.info("=" * 50)
    logger.info("Kaali Tilli 牌局服务器启动中...")
    logger.info(f"监听地址: {host}:{port}, 结算延时: {delay}s")
    logger.info("=" * 50)

    from kaali_tilli.server.network import NetworkServer

    server = NetworkServer(host, port, resolve_delay=delay)
    try:
        server.start()
        logger.info("服务器运行中，按 Ctrl+C 停止")

        # 保持服务器运行
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

"""
主程序入口

加载配置、配置日志并启动 REST API 服务。
"""

import asyncio
import logging
import sys
from pathlib import Path

import uvicorn

from . import __version__
from .config import get_config


def setup_logging():
    """配置日志"""
    config = get_config()

    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    level = getattr(logging, config.logging.level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format=log_format,
        handlers=[logging.StreamHandler(sys.stdout)]
    )

    # 如果配置了文件日志
    if config.logging.file:
        log_path = Path(config.logging.file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(str(log_path), encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(log_format))
        logging.getLogger().addHandler(file_handler)

    # 降低第三方库日志级别
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


async def run_api_server():
    """运行 API 服务器"""
    from .api.app import create_app

    config = get_config()
    server_config = uvicorn.Config(
        app=create_app(),
        host=config.api.host,
        port=config.api.port,
        log_level="info",
        access_log=False
    )
    server = uvicorn.Server(server_config)
    await server.serve()


async def main():
    """主函数"""
    logger = logging.getLogger(__name__)

    setup_logging()
    logger.info(f"Monitor Inventory v{__version__}")

    config = get_config()
    logger.info(f"Config loaded: API={config.api.host}:{config.api.port}")
    logger.info(f"Object store: {config.store.base_url} (type={config.store.monitor_type}, page_size={config.store.page_size})")
    logger.info(f"Location directory: {config.locations.base_url}")

    try:
        await run_api_server()
    except asyncio.CancelledError:
        logger.info("Server cancelled, shutting down...")


def cli():
    """命令行入口"""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nShutdown requested, exiting...")
        sys.exit(0)


if __name__ == "__main__":
    cli()

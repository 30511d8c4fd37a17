import asyncio
import sys
from pathlib import Path
from typing import List, Optional
from loguru import logger
from sqlite2scylla.config.loader import load_config
from sqlite2scylla.errors import ConfigError
from sqlite2scylla.services.migration import MigrationOrchestrator

def configure_logging(log_file: str = "migration.log") -> None:
    # 移除默认的处理器
    logger.remove()

    # 添加文件处理器
    logger.add(
        log_file,
        rotation="500 MB",
        level="INFO",
        format="<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
    )

    # 添加控制台处理器, 诊断信息输出到标准错误
    logger.add(
        sys.stderr,
        level="DEBUG",
        format="<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <level>{message}</level>"
    )

def parse_args(argv: List[str]) -> str:
    """解析命令行参数"""
    config_path = None
    for arg in argv:
        if arg.startswith("config="):
            # 去除可能存在的引号
            config_path = arg.split("=", 1)[1].strip("'\"")
            break

    if not config_path:
        raise ConfigError("Missing required argument: config=<path_to_config_file>")

    logger.debug(f"Parsed config path: {config_path}")
    return config_path

async def main(argv: Optional[List[str]] = None) -> int:
    try:
        config_path = parse_args(sys.argv[1:] if argv is None else argv)
        logger.info(f"Loading configuration from: {Path(config_path).absolute()}")
        config = load_config(config_path)
    except ConfigError as e:
        logger.error(f"Migration failed at load config: {type(e).__name__}: {str(e)}")
        return 1

    orchestrator = MigrationOrchestrator(config)
    return 0 if await orchestrator.run() else 1

if __name__ == "__main__":
    configure_logging()
    sys.exit(asyncio.run(main()))

import os
import sys
from pathlib import Path

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - "
    "<level>{message}</level>"
)


def setup_logger(*, json_logs: bool = False, level: str = "INFO", log_dir: str = "logs") -> None:
    """Configure loguru for the aggregation service.

    Console level comes from LOG_LEVEL (falls back to ``level``). The daily
    file keeps DEBUG, where per-token RPC failures and skipped logs land.
    Warnings and above are also written to a separate file so stale-cache
    serves and indexer fallbacks are easy to find.
    """
    console_level = os.getenv("LOG_LEVEL", level).upper()
    logger.remove()

    if json_logs:
        logger.add(sys.stdout, serialize=True, level=console_level)
    else:
        logger.add(sys.stdout, format=CONSOLE_FORMAT, level=console_level, colorize=True)

    directory = Path(log_dir)
    logger.add(
        directory / "launchstats_{time:YYYY-MM-DD}.log",
        rotation="20 MB",
        retention="3 days",
        compression="gz",
        level="DEBUG",
        serialize=json_logs,
    )
    logger.add(
        directory / "launchstats_warnings.log",
        rotation="5 MB",
        retention=5,
        level="WARNING",
        serialize=json_logs,
    )

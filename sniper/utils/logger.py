import os
import sys
from pathlib import Path

from loguru import logger

# Tags written by the executor and the broadcast relay
TRADE_TAGS = ("[BUY]", "[JITO]")


def _is_trade_record(record: dict) -> bool:
    return record["message"].startswith(TRADE_TAGS)


def setup_logger(*, json_logs: bool = False, level: str = "INFO", log_dir: str = "logs") -> None:
    """Configure loguru for the sniper.

    Console level controlled by LOG_LEVEL env (falls back to ``level``).
    The main file captures DEBUG for post-mortem analysis of missed snipes;
    a second file keeps only buy and broadcast lines as a trade audit trail.
    """
    console_level = os.getenv("LOG_LEVEL", level).upper()
    logger.remove()

    if json_logs:
        logger.add(sys.stdout, serialize=True, level=console_level)
    else:
        logger.add(
            sys.stdout,
            format=(
                "<green>{time:HH:mm:ss.SSS}</green> | "
                "<level>{level: <8}</level> | "
                "<cyan>{name}</cyan>:<cyan>{function}</cyan> - "
                "<level>{message}</level>"
            ),
            level=console_level,
            colorize=True,
        )

    base = Path(log_dir)
    logger.add(
        base / "sniper_{time:YYYY-MM-DD}.log",
        rotation="50 MB",
        retention="7 days",
        compression="gz",
        level="DEBUG",
        serialize=json_logs,
        enqueue=True,
    )
    logger.add(
        base / "trades_{time:YYYY-MM-DD}.log",
        rotation="00:00",
        retention="90 days",
        level="INFO",
        filter=_is_trade_record,
        enqueue=True,
    )

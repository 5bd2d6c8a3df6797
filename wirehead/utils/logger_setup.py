"""loguru sinks for the CLI: console on stderr plus a rotating log file."""

from datetime import datetime, timezone
from pathlib import Path
import sys

from loguru import logger

# thread name included: the evolution engine logs from its own thread
_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {thread.name} | {name}:{function}:{line} | {message}"
_COLOR_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{thread.name}</cyan> | <level>{message}</level>"
)


def setup_logger(
    log_dir: str = "logs",
    level: str = "INFO",
    rotation: str = "50 MB",
    retention: str = "30 days",
) -> Path:
    """Replace loguru's default sink and return the path of the log file."""
    directory = Path(log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    log_file = directory / f"wirehead_{datetime.now(timezone.utc):%Y%m%d_%H%M%S}.log"

    logger.remove()
    colorize = sys.stderr.isatty()
    logger.add(
        sys.stderr,
        level=level,
        format=_COLOR_FORMAT if colorize else _FORMAT,
        colorize=colorize,
        enqueue=True,
    )
    logger.add(
        log_file,
        level=level,
        format=_FORMAT,
        rotation=rotation,
        retention=retention,
        compression="zip",
        encoding="utf-8",
        backtrace=True,
        enqueue=True,
    )

    logger.debug("Logging {} to {}", level, log_file)
    return log_file

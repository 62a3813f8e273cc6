import os
import sys

from loguru import logger

# stdout carries the JSON report, so every sink here is stderr or a file
_CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<magenta>{extra[token]}</magenta> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)


def setup_logger(*, json_logs: bool = False, level: str = "INFO", log_dir: str = "logs") -> None:
    """Route loguru to stderr and a rotating daily file.

    Records emitted inside ``logger.contextualize(token=...)`` carry the token
    being assessed; everything else shows "-". The file sink keeps DEBUG,
    which includes raw LLM replies that failed to parse.
    """
    console_level = os.getenv("LOG_LEVEL", level).upper()
    logger.remove()
    logger.configure(extra={"token": "-"})

    if json_logs:
        logger.add(sys.stderr, serialize=True, level=console_level)
    else:
        logger.add(sys.stderr, format=_CONSOLE_FORMAT, level=console_level, colorize=True)

    if log_dir:
        logger.add(
            os.path.join(log_dir, "tokenshield_{time:YYYY-MM-DD}.log"),
            rotation="20 MB",
            retention="7 days",
            compression="gz",
            level="DEBUG",
            serialize=json_logs,
            enqueue=True,
        )

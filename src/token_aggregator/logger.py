"""Console logging for token-aggregator."""

import logging
import os
import sys

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

# Transport libraries that flood DEBUG output
NOISY_LOGGERS = ("web3", "urllib3", "backoff")


class ColoredFormatter(logging.Formatter):
    """Prefix the level name with an ANSI color."""

    COLORS = {
        "TRACE": "\033[90m",
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        original = record.levelname
        color = self.COLORS.get(original)
        if color:
            record.levelname = f"{color}{original}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = original


def _resolve_level(level_name: str) -> int:
    if level_name == "TRACE":
        return TRACE
    level = logging.getLevelName(level_name)
    return level if isinstance(level, int) else logging.INFO


def setup_logging(log_level: str | None = None) -> None:
    """Configure the root logger.

    ``log_level`` wins over the LOG_LEVEL environment variable; INFO is the
    fallback. Output goes to stderr so JSON printed on stdout stays clean.
    At DEBUG the transport libraries are held at WARNING; TRACE shows them.
    """
    level_name = (log_level or os.getenv("LOG_LEVEL", "INFO")).upper()
    level = _resolve_level(level_name)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        ColoredFormatter(
            fmt="%(asctime)s %(levelname)s [%(name)s] %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    logging.basicConfig(level=level, handlers=[handler], force=True)

    noisy_level = TRACE if level == TRACE else max(level, logging.WARNING)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(noisy_level)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)

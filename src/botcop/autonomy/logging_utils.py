import logging
import os
import sys
from .config import Config


_RESET = "\033[0m"
_BOLD = "\033[1m"
_DIM = "\033[2m"
_CYAN = "\033[36m"
_MAGENTA = "\033[35m"
_GREEN = "\033[32m"
_YELLOW = "\033[33m"
_COLORS = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[31m",
}

LOG_FORMAT = "%(asctime)sZ %(levelname)s %(message)s"
LOG_DATEFMT = "%Y-%m-%dT%H:%M:%S"


def _stream_supports_color() -> bool:
    if os.getenv("NO_COLOR"):
        return False
    force = os.getenv("FORCE_COLOR", "").strip().lower()
    if force in {"1", "true", "yes"}:
        return True
    return bool(sys.stderr.isatty())


class ColorFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        level_name = record.levelname.upper()
        color = _COLORS.get(level_name, "")
        if not color:
            return message

        text = record.getMessage()
        if "MESSAGE ACTION" in text:
            painted = f"{_BOLD}{_CYAN}{message}{_RESET}"
        elif "COMMENT ACTION" in text:
            painted = f"{_BOLD}{_MAGENTA}{message}{_RESET}"
        elif text.startswith(("Sent message", "Commented on")):
            painted = f"{_BOLD}{_GREEN}[SUCCESS] {message}{_RESET}"
        elif "Recovery" in text or "re-authenticating" in text:
            painted = f"{_BOLD}{_YELLOW}[RECOVERY] {message}{_RESET}"
        elif text.startswith("Sent report"):
            painted = f"{_DIM}{color}{message}{_RESET}"
        else:
            painted = f"{color}{message}{_RESET}"
        return painted


def setup_logging(cfg: Config) -> logging.Logger:
    level = getattr(logging, cfg.log_level, logging.INFO)
    logger = logging.getLogger("botcop")
    logger.setLevel(level)
    logger.handlers.clear()
    logger.propagate = False

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)

    stream_handler = logging.StreamHandler()
    if _stream_supports_color():
        stream_handler.setFormatter(ColorFormatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT))
    else:
        stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if cfg.log_path:
        cfg.log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(cfg.log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger

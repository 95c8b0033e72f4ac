import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from config import LOG_DIR


def setup_logger(log_dir: Path = LOG_DIR) -> logging.Logger:
    """
    Configure the "pos" logger shared by every module.

    - Daily rotating log file, one week kept
    - Console + file output
    - Safe to call more than once
    """
    logger = logging.getLogger("pos")
    logger.setLevel(logging.INFO)

    # Avoid duplicate handlers if setup_logger() is called multiple times
    if logger.handlers:
        return logger

    log_dir.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    file_handler = TimedRotatingFileHandler(
        filename=log_dir / "pos.log",
        when="midnight",
        interval=1,
        backupCount=7,
        encoding="utf-8",
    )
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)

    logger.addHandler(file_handler)
    logger.addHandler(console_handler)

    logger.info("Logger initialized (daily rotation enabled)")
    return logger

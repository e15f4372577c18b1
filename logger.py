# logger.py
# Логгеры сервиса: иерархия "leaderboard.*", консоль и необязательный файл

import copy
import logging
import sys
from pathlib import Path

ROOT_LOGGER = 'leaderboard'

CONSOLE_FORMAT = '%(asctime)s | %(levelname)s | %(name)s | %(message)s'
FILE_FORMAT = '%(asctime)s | %(levelname)s | %(name)s | %(funcName)s:%(lineno)d | %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

LEVEL_COLORS = {
    logging.DEBUG: '\033[36m',
    logging.INFO: '\033[32m',
    logging.WARNING: '\033[33m',
    logging.ERROR: '\033[31m',
    logging.CRITICAL: '\033[35m',
}
RESET = '\033[0m'


class LevelColorFormatter(logging.Formatter):
    """Подсвечивает уровень в терминале, не трогая сам record."""

    def formatMessage(self, record):
        color = LEVEL_COLORS.get(record.levelno)
        if color is None:
            return super().formatMessage(record)
        tinted = copy.copy(record)
        tinted.levelname = f'{color}{record.levelname}{RESET}'
        return super().formatMessage(tinted)


def _level(value):
    if isinstance(value, int):
        return value
    resolved = logging.getLevelName(str(value).upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logger(level=logging.INFO, log_file=None):
    """Настраивает корневой логгер сервиса; повторный вызов заменяет обработчики."""
    level = _level(level)
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)
    logger.handlers.clear()
    logger.propagate = False

    console = logging.StreamHandler(sys.stdout)
    formatter_class = LevelColorFormatter if sys.stdout.isatty() else logging.Formatter
    console.setFormatter(formatter_class(CONSOLE_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(console)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding='utf-8')
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(file_handler)

    return logger


def get_logger(component):
    return logging.getLogger(f'{ROOT_LOGGER}.{component}')

import json
import logging
import sys
import traceback
from logging.handlers import RotatingFileHandler
from pathlib import Path

from core.config import settings

# log directory
LOGS_DIR = Path(settings.LOG_DIR)
LOGS_DIR.mkdir(parents=True, exist_ok=True)

DEFAULT_LEVEL = logging.getLevelName(settings.LOG_LEVEL)
if not isinstance(DEFAULT_LEVEL, int):
    DEFAULT_LEVEL = logging.DEBUG


def to_json(data: dict) -> str:
    return json.dumps(data, ensure_ascii=False, indent=2, default=str)


class ColoredFormatter(logging.Formatter):
    """Colored level names for the terminal"""

    COLORS = {
        'DEBUG': '\033[36m',  # cyan
        'INFO': '\033[32m',  # green
        'WARNING': '\033[33m',  # yellow
        'ERROR': '\033[31m',  # red
        'CRITICAL': '\033[35m',  # magenta
        'RESET': '\033[0m'  # reset
    }

    def format(self, record):
        # the file handler formats the same record, keep it uncolored
        record = logging.makeLogRecord(record.__dict__)
        log_color = self.COLORS.get(record.levelname, self.COLORS['RESET'])
        record.levelname = f"{log_color}{record.levelname}{self.COLORS['RESET']}"
        return super().format(record)


def setup_logger(
        name: str,
        log_file: str = None,
        level: int = None,
        max_bytes: int = 10 * 1024 * 1024,  # 10MB
        backup_count: int = 5
) -> logging.Logger:
    """
    Build a logger writing to the console and, optionally, a rotating file.

    Args:
        name: logger name
        log_file: file name under LOGS_DIR (console only when None)
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL; LOG_LEVEL when None
        max_bytes: file size before rotation
        backup_count: number of rotated files kept
    """
    if level is None:
        level = DEFAULT_LEVEL

    logger = logging.getLogger(name)
    logger.setLevel(level)

    # drop handlers from an earlier setup
    logger.handlers.clear()

    # format
    log_format = '%(asctime)s | %(levelname)-8s | %(name)s | %(funcName)s:%(lineno)d | %(message)s'
    date_format = '%Y-%m-%d %H:%M:%S'

    # console handler (colored)
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(ColoredFormatter(log_format, datefmt=date_format))
    logger.addHandler(console_handler)

    # file handler (plain)
    if log_file:
        file_handler = RotatingFileHandler(
            LOGS_DIR / log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding='utf-8'
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(log_format, datefmt=date_format))
        logger.addHandler(file_handler)

    return logger


class DatabaseLogger:
    """Logs gateway (database) operations"""

    def __init__(self, logger_name: str = "database"):
        self.logger = setup_logger(
            name=logger_name,
            log_file=f"{logger_name}.log"
        )

    def log_create(self, model_name: str, data: dict):
        """New row"""
        self.logger.info(f"CREATE {model_name}:\n{to_json(data)}")

    def log_update(self, model_name: str, record_id: int, changes: dict):
        """Changed fields of a row"""
        self.logger.info(f"UPDATE {model_name} (id={record_id}):\n{to_json(changes)}")

    def log_delete(self, model_name: str, record_id: int):
        """Removed row"""
        self.logger.warning(f"DELETE {model_name} (id={record_id})")

    def log_error(self, operation: str, error: Exception):
        """Failed gateway call, with the active traceback"""
        self.logger.error(
            f"DB ERROR in {operation}:\n"
            f"Error Type: {type(error).__name__}\n"
            f"Error Message: {str(error)}\n"
            f"Traceback:\n{traceback.format_exc()}"
        )


class WebSocketLogger:
    """Logs the push channel"""

    def __init__(self, logger_name: str = "websocket"):
        self.logger = setup_logger(
            name=logger_name,
            log_file=f"{logger_name}.log"
        )

    def log_connect(self, user_id: int, session_id: int):
        """Socket joined a session"""
        self.logger.info(f"🔗 CONNECT: user={user_id}, session={session_id}")

    def log_disconnect(self, user_id: int, session_id: int):
        """Socket left a session"""
        self.logger.info(f"🔌 DISCONNECT: user={user_id}, session={session_id}")

    def log_message(self, action: str, data: dict):
        """Incoming client action"""
        self.logger.debug(f"📩 MESSAGE: action={action}\n{to_json(data)}")

    def log_broadcast(self, session_id: int, message_type: str):
        """Event pushed to every socket of a session"""
        self.logger.debug(f"📡 BROADCAST: session={session_id}, type={message_type}")

    def log_error(self, context: str, error: Exception):
        self.logger.error(
            f"❌ WS ERROR in {context}:\n"
            f"Error Type: {type(error).__name__}\n"
            f"Error Message: {str(error)}\n"
            f"Traceback:\n{traceback.format_exc()}"
        )


db_logger = DatabaseLogger()
ws_logger = WebSocketLogger()
chat_logger = setup_logger("chat", "chat.log")
app_logger = setup_logger("app", "app.log")

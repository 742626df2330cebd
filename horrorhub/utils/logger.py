import logging
import logging.handlers
import os
from pathlib import Path

LOG_FILE_NAME = "horrorhub.log"


class LineRotatingFileHandler(logging.FileHandler):
    """File handler that rotates after a fixed number of lines instead of bytes."""

    def __init__(self, filename, maxLines=500, backupCount=5, encoding=None, delay=False):
        super().__init__(filename, 'a', encoding, delay)
        self.maxLines = maxLines
        self.backupCount = backupCount
        self.lineCount = self._count_lines()

    def _count_lines(self):
        try:
            with open(self.baseFilename, 'r', encoding=self.encoding) as f:
                return sum(1 for _ in f)
        except OSError:
            return 0

    def emit(self, record):
        super().emit(record)
        self.lineCount += 1
        if self.lineCount >= self.maxLines:
            self.doRollover()

    def doRollover(self):
        if self.stream:
            self.stream.close()
            self.stream = None

        # horrorhub.log.4 -> horrorhub.log.5, ...
        for i in range(self.backupCount - 1, 0, -1):
            src = f"{self.baseFilename}.{i}"
            dst = f"{self.baseFilename}.{i + 1}"
            if os.path.exists(src):
                if os.path.exists(dst):
                    os.remove(dst)
                os.rename(src, dst)

        first_backup = f"{self.baseFilename}.1"
        if os.path.exists(first_backup):
            os.remove(first_backup)
        if os.path.exists(self.baseFilename):
            os.rename(self.baseFilename, first_backup)

        self.lineCount = 0

        if not self.delay:
            self.stream = self._open()


_logger = None
_handlers = []


def get_logger():
    return _logger


def get_log_dir() -> Path:
    return Path(os.getenv("LOG_DIR", "logs"))


def setup_logging(log_level: str = "INFO"):
    """Setup logging to file + console. Safe to call more than once."""
    global _logger, _handlers

    log_level = log_level.upper()
    _logger = logging.getLogger()
    _logger.setLevel(log_level)

    for handler in list(_handlers):
        _logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(
        fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)

    log_dir = get_log_dir()
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME
    file_handler = LineRotatingFileHandler(log_file, maxLines=500, backupCount=5)
    file_handler.setLevel(log_level)
    file_handler.setFormatter(formatter)

    _handlers = [console_handler, file_handler]
    for handler in _handlers:
        _logger.addHandler(handler)

    # Library chatter
    for noisy in ("httpx", "apscheduler", "aiohttp"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    _logger.info(f"✓ Logging initialized - Level: {log_level}, File: {log_file}")


def change_log_level_runtime(new_level: str) -> bool:
    """Change the root level and every installed handler's level"""
    if not _logger:
        return False

    try:
        new_level = new_level.upper()
        _logger.setLevel(new_level)
        for handler in _handlers:
            handler.setLevel(new_level)

        logging.getLogger(__name__).info(f"Log-Level changed to {new_level}")
        return True
    except (ValueError, TypeError) as e:
        logging.getLogger(__name__).error(f"Failed to change log level: {e}")
        return False

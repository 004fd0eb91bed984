import os
import logging
import threading
import multiprocessing

from . import config

LOGGER_NAME = 'mineworld'
_logger = logging.getLogger(LOGGER_NAME)

_LEVELS = {
    'DEBUG': logging.DEBUG,
    'INFO': logging.INFO,
    'WARN': logging.WARNING,
    'WARNING': logging.WARNING,
    'ERROR': logging.ERROR,
}


def setup(level=logging.INFO):
    '''
    Install a basic stderr handler for applications that have not configured logging.
    '''
    logging.basicConfig(level=level)
    _logger.setLevel(level)


def log(scope, msg, level="INFO"):
    levelno = _LEVELS.get(level, logging.INFO)
    if not _logger.isEnabledFor(levelno):
        return
    pid = os.getpid()
    proc = multiprocessing.current_process().name
    thread = threading.current_thread().name
    text = f"[{level} pid{pid} proc{proc} thr{thread} {scope}] {msg}"
    use_color = getattr(config, "LOG_COLOR", True) and os.getenv("NO_COLOR") is None
    if use_color:
        # Main process + main thread: default (no color).
        if proc == "MainProcess" and thread != "MainThread":
            # Generation worker thread.
            text = f"\x1b[32m{text}\x1b[0m"
        elif proc != "MainProcess":
            text = f"\x1b[33m{text}\x1b[0m"
    _logger.log(levelno, text)

import logging
import re
import sys
from typing import Optional

LOG_FILE = 'extforge.log'

_LOG_FMT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
_CONSOLE_FMT = '%(levelname)s %(name)s: %(message)s'
_BLUE = '\033[94m'   # bright blue
_RESET = '\033[0m'

# Source paths and build artifacts (styles, scripts, images, archives)
_PATH_RE = re.compile(
    r'(?:'
    r'[\w./\\@-]+/[\w./\\@-]+'
    r'|'
    r'\w[\w._-]*\.(?:json|html|css|scss|js|map|svg|png|jpg|zip|xpi|log)'
    r')'
)


def highlight_paths(text: str) -> str:
    """Render file paths in bright blue."""
    return _PATH_RE.sub(lambda m: f"{_BLUE}{m.group()}{_RESET}", text)


class _ColorStreamFormatter(logging.Formatter):
    """Stream formatter that renders file paths in bright blue."""
    def format(self, record: logging.LogRecord) -> str:
        return highlight_paths(super().format(record))


_file_handler: Optional[logging.FileHandler] = None
_stream_handler: Optional[logging.StreamHandler] = None


def configure_logging(verbose: bool = False, log_file: str = LOG_FILE) -> None:
    """
    Attach the file and console handlers to the root logger.

    The log file always receives DEBUG; the console shows INFO, or DEBUG
    with verbose. The file handler is only created once.
    """
    global _file_handler, _stream_handler

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    if _file_handler is None:
        # delay: the log file only appears once something is logged
        _file_handler = logging.FileHandler(log_file, delay=True)
        _file_handler.setLevel(logging.DEBUG)
        _file_handler.setFormatter(logging.Formatter(_LOG_FMT))
        root.addHandler(_file_handler)

    # Console handler is rebuilt so it writes to the current sys.stderr
    if _stream_handler is not None:
        root.removeHandler(_stream_handler)
    _stream_handler = logging.StreamHandler(sys.stderr)
    _stream_handler.setFormatter(_ColorStreamFormatter(_CONSOLE_FMT))
    root.addHandler(_stream_handler)
    _stream_handler.setLevel(logging.DEBUG if verbose else logging.INFO)

    # watchdog reports every inotify event at DEBUG
    logging.getLogger('watchdog').setLevel(logging.INFO)

"""
Tile canvas logging - File and console logging for engine debugging
"""
from datetime import datetime
from pathlib import Path

# Log file handle
_log_file = None
_log_enabled = True
_console_enabled = True

LOG_FILE_NAME = "tilecanvas_debug.log"


def init_logging(log_dir: str = None):
    """Initialize file logging for the tile canvas engine"""
    global _log_file

    if log_dir is None:
        # Default to the project root
        log_dir = Path(__file__).parent.parent.parent

    log_path = Path(log_dir) / LOG_FILE_NAME

    try:
        # Clear previous log
        _log_file = open(log_path, 'w', encoding='utf-8')
        _log_file.write(f"=== Tile Canvas Debug Log - {datetime.now().isoformat()} ===\n\n")
        _log_file.flush()
        if _console_enabled:
            print(f"[TileCanvas] Logging to: {log_path}")
    except OSError as e:
        print(f"[TileCanvas] Warning: Could not create log file: {e}")
        _log_file = None


def log(message: str, prefix: str = "[TileCanvas]"):
    """Log a message to both console and file"""
    global _log_file

    full_message = f"{prefix} {message}"

    if _console_enabled:
        print(full_message)

    if _log_file and _log_enabled:
        try:
            _log_file.write(full_message + "\n")
            _log_file.flush()
        except OSError as e:
            print(f"[TileCanvas] Warning: log file write failed, file logging off: {e}")
            _log_file = None


def log_engine(message: str):
    """Log a TileGridEngine message"""
    log(message, "[TileGridEngine]")


def log_fill(message: str):
    """Log a FillEngine message"""
    log(message, "[FillEngine]")


def log_compat(message: str):
    """Log a compatibility table message"""
    log(message, "[Compat]")


def log_history(message: str):
    """Log an undo/redo history message"""
    log(message, "[History]")


def log_brush(message: str):
    """Log a Brush / preset message"""
    log(message, "[Brush]")


def close_logging():
    """Close the log file"""
    global _log_file
    if _log_file:
        try:
            _log_file.close()
        except OSError as e:
            print(f"[TileCanvas] Warning: could not close log file: {e}")
        _log_file = None


def set_logging_enabled(enabled: bool):
    """Enable or disable file logging"""
    global _log_enabled
    _log_enabled = enabled


def set_console_enabled(enabled: bool):
    """Enable or disable console output"""
    global _console_enabled
    _console_enabled = enabled

"""
Logging utilities for the Resonance series generator
"""
import traceback
from datetime import datetime
from typing import Optional

from ..config import LOG_DIR
from ..core.constants import ERROR_LOG_FILE


def log_error(message: str, context: str = "general", exception: Optional[BaseException] = None) -> None:
    """
    Append error messages to a log file with timestamps for troubleshooting.

    Args:
        message: Error message to log
        context: Context where the error occurred
        exception: Optional exception object
    """
    timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    error_msg = f"[{timestamp}] ({context}) {message}"
    if exception is not None:
        error_msg += f"\n  Exception type: {type(exception).__name__}"
        error_msg += f"\n  Exception details: {exception}"
        tb_str = "".join(traceback.format_exception(type(exception), exception, exception.__traceback__))
        error_msg += f"\n  Traceback:\n{tb_str}"
    error_msg += "\n"
    try:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        with open(LOG_DIR / ERROR_LOG_FILE, "a", encoding="utf-8") as f:
            f.write(error_msg)
    except OSError as e:
        # 로그 파일을 못 쓰면 콘솔에만 남김
        print(f"  ⚠ Could not write error log: {e}", flush=True)


def print_error(message: str, context: str = "general", exception: Optional[BaseException] = None) -> None:
    """
    Print error message to console and log it to file.
    """
    print(f"✗ [{context}] {message}", flush=True)
    if exception is not None:
        print(f"  Exception type: {type(exception).__name__}", flush=True)
        print(f"  Exception details: {exception}", flush=True)
    log_error(message, context, exception)


def print_warning(message: str, context: str = "general", exception: Optional[BaseException] = None) -> None:
    """
    Print warning message to console (not written to the error log).
    """
    print(f"⚠ [{context}] {message}", flush=True)
    if exception is not None:
        print(f"  Exception type: {type(exception).__name__}", flush=True)
        print(f"  Exception details: {exception}", flush=True)

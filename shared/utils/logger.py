# shared/utils/logger.py
import logging
from contextvars import ContextVar

from rich.console import Console
from rich.logging import RichHandler

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")


class RequestIdFilter(logging.Filter):
    """Stamp every record with the id of the request being served."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get()
        return True


_console = Console(force_terminal=True)  # Force color output in all terminal environments
_handler = RichHandler(console=_console, rich_tracebacks=True, show_path=False)
_handler.setFormatter(logging.Formatter("[%(request_id)s] %(message)s"))
_handler.addFilter(RequestIdFilter())


class TsLogger:
    """Logger with RichHandler and request id tagging."""

    def __init__(self, name: str, level: int = logging.INFO):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(level)
        if _handler not in self.logger.handlers:
            self.logger.addHandler(_handler)
        self.logger.propagate = False

    @staticmethod
    def bind_request_id(request_id: str):
        """Bind the request id to the current context; returns the reset token."""
        return request_id_var.set(request_id)

    @staticmethod
    def reset_request_id(token) -> None:
        request_id_var.reset(token)

    def info(self, message: str):
        self.logger.info(message)

    def debug(self, message: str):
        self.logger.debug(message)

    def warning(self, message: str):
        self.logger.warning(message)

    def error(self, message: str, exception: Exception = None):
        """Log an error-level message with optional exception traceback."""
        self.logger.error(message, exc_info=exception)

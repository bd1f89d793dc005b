import logging
import json
import sys


class SafeStreamHandler(logging.StreamHandler):
    """
    Stream handler that drops records once its stream is gone, e.g. stderr
    piped into a process that already exited.
    """

    def emit(self, record):
        if getattr(self.stream, "closed", False):
            return
        super().emit(record)

    def handleError(self, record):
        error = sys.exc_info()[1]
        if isinstance(error, BrokenPipeError):
            return
        if isinstance(error, (ValueError, OSError)):
            text = str(error).lower()
            if "closed file" in text or "bad file descriptor" in text:
                return
        super().handleError(record)


class StructuredLogFormatter(logging.Formatter):
    """
    Formats log records as JSON with the store's contextual fields.
    """

    context_fields = ("address", "phase", "duration_ms")

    def format(self, record: logging.LogRecord) -> str:
        log_record = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in self.context_fields:
            value = getattr(record, field, None)
            if value is not None:
                log_record[field] = value
        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)
        elif record.exc_text:
            log_record["exception"] = record.exc_text
        return json.dumps(log_record, ensure_ascii=False)


def configure_logging(log_level: str = "WARNING") -> None:
    """
    Install a single stderr handler with structured JSON output on the root
    logger.
    """
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    handler = SafeStreamHandler(sys.stderr)
    handler.setFormatter(StructuredLogFormatter())
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level.upper())
    logging.getLogger("asyncio").setLevel("WARNING")
    logging.getLogger("aiohttp").setLevel("WARNING")
    logging.getLogger("git").setLevel("WARNING")

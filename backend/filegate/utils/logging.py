"""
Production logging utility for structured JSON logging.

Provides event-specific logging functions with mandatory fields:
- timestamp (ISO8601)
- level
- service
- event

Optional fields (included when applicable):
- key
- size
- content_type
- duration_ms

Usage:
    from filegate.utils.logging import configure_logging, log_upload_completed

    configure_logging('filegate', 'INFO')
    log_upload_completed(logger, key='a.txt', size=5, duration_ms=12.3)
"""
import logging
import sys
from typing import Optional, Dict, Any
from pythonjsonlogger import jsonlogger


class StructuredLogger:
    """Structured JSON logger with mandatory fields."""

    _service_name = None
    _configured = False

    @classmethod
    def configure(cls, service_name: str, log_level: str = "INFO"):
        """
        Configure structured JSON logging for the application.

        Args:
            service_name: Service identifier (e.g. filegate)
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        """
        if cls._configured:
            return  # Already configured

        cls._service_name = service_name

        # Remove default handlers
        root_logger = logging.getLogger()
        root_logger.handlers = []

        formatter = jsonlogger.JsonFormatter(
            '%(timestamp)s %(level)s %(name)s %(message)s',
            timestamp=True,
            json_ensure_ascii=False
        )

        # Console handler (for container logs)
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(formatter)

        root_logger.addHandler(handler)
        root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

        # Add service name to all log records via filter
        class ServiceFilter(logging.Filter):
            def filter(self, record):
                record.service = cls._service_name
                return True

        handler.addFilter(ServiceFilter())

        # boto3 is chatty at DEBUG; keep it at WARNING unless asked otherwise
        for noisy in ("botocore", "boto3", "s3transfer", "urllib3"):
            logging.getLogger(noisy).setLevel(logging.WARNING)

        cls._configured = True


def _build_log_extra(
    event: str,
    key: Optional[str] = None,
    duration_ms: Optional[float] = None,
    **kwargs
) -> Dict[str, Any]:
    """
    Build extra fields for structured logging.

    Args:
        event: Event name (mandatory)
        key: Optional object key
        duration_ms: Optional duration in milliseconds
        **kwargs: Additional fields (None values are dropped)

    Returns:
        Dictionary of extra fields
    """
    extra = {"event": event}
    extra.update({k: v for k, v in kwargs.items() if v is not None})

    if key is not None:
        extra["key"] = key
    if duration_ms is not None:
        extra["duration_ms"] = round(duration_ms, 2)

    return extra


# Upload event functions

def log_upload_completed(
    logger: logging.Logger,
    key: str,
    size: int,
    content_type: Optional[str] = None,
    duration_ms: Optional[float] = None,
    **kwargs
):
    """
    Log a successful upload.

    Args:
        logger: Logger instance
        key: Object key (required)
        size: Store-confirmed byte count (required)
        content_type: Stored content type
        duration_ms: Optional duration in milliseconds
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="upload_completed",
        key=key,
        duration_ms=duration_ms,
        size=size,
        content_type=content_type,
        **kwargs
    )
    logger.info(f"Upload completed: {key} ({size} bytes)", extra=extra)


def log_upload_rejected(logger: logging.Logger, reason: str, key: Optional[str] = None, **kwargs):
    """Log an upload refused before the store was touched."""
    extra = _build_log_extra(event="upload_rejected", key=key, reason=reason, **kwargs)
    logger.warning(f"Upload rejected: {reason}", extra=extra)


def log_upload_aborted(
    logger: logging.Logger,
    key: str,
    error: str,
    duration_ms: Optional[float] = None,
    **kwargs
):
    """
    Log an upload abandoned mid-stream (client disconnect or body error).

    No traceback: the cause is on the client side of the connection.
    """
    extra = _build_log_extra(
        event="upload_aborted",
        key=key,
        duration_ms=duration_ms,
        error=error,
        **kwargs
    )
    logger.warning(f"Upload aborted: {key} - {error}", extra=extra)


# Read event functions

def log_file_served(
    logger: logging.Logger,
    key: str,
    size: Optional[int] = None,
    duration_ms: Optional[float] = None,
    **kwargs
):
    """Log a file whose body started streaming back to the client."""
    extra = _build_log_extra(
        event="file_served",
        key=key,
        duration_ms=duration_ms,
        size=size,
        **kwargs
    )
    logger.info(f"File served: {key}", extra=extra)


def log_files_listed(
    logger: logging.Logger,
    count: int,
    limit: int,
    duration_ms: Optional[float] = None,
    **kwargs
):
    """Log a listing call."""
    extra = _build_log_extra(
        event="files_listed",
        duration_ms=duration_ms,
        count=count,
        limit=limit,
        **kwargs
    )
    logger.debug(f"Listed {count} files (limit {limit})", extra=extra)


# Store event functions

def log_store_failure(
    logger: logging.Logger,
    operation: str,
    error: str,
    key: Optional[str] = None,
    include_traceback: bool = True,
    **kwargs
):
    """
    Log a failed object store operation.

    Args:
        logger: Logger instance
        operation: Store operation name (put, get, list, ping)
        error: Error message (required)
        key: Optional object key
        include_traceback: Whether to include the active stack trace
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="store_failure",
        key=key,
        operation=operation,
        error=str(error),
        **kwargs
    )

    message = f"Store failure: {operation} - {error}"

    if include_traceback:
        exc_info = sys.exc_info()
        if exc_info[0] is not None:
            logger.error(message, extra=extra, exc_info=exc_info)
            return
    logger.error(message, extra=extra)


def configure_logging(service_name: str, log_level: str = "INFO"):
    """Configure logging (alias for StructuredLogger.configure)."""
    StructuredLogger.configure(service_name, log_level)

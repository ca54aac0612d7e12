"""
Logging helpers for MangaMapper.

Every mapper call creates a RequestLogger and hands it down to the
provider and the extraction pipeline, so all lines written for one
request carry the same provider name and request id.
"""
import logging
import uuid
from pathlib import Path
from typing import Optional, Union

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

logger = logging.getLogger('mangamapper')

Log = Union[logging.Logger, logging.LoggerAdapter]


class RequestLogger(logging.LoggerAdapter):
    """Logger adapter that prefixes messages with request context."""

    def process(self, msg, kwargs):
        extra = dict(self.extra or {})
        kwargs.setdefault('extra', {}).update(extra)
        return f"[{extra.get('provider', '-')} {extra.get('request_id', '-')}] {msg}", kwargs


def request_logger(provider_id: str, operation: str, base: Optional[logging.Logger] = None) -> RequestLogger:
    """
    Create a logger scoped to one request.

    Args:
        provider_id: Provider handling the request
        operation: Name of the mapper operation (e.g. "chapters")
        base: Underlying logger (defaults to the "mangamapper" logger)

    Returns:
        RequestLogger carrying provider, operation and a short request id
    """
    return RequestLogger(base or logger, {
        'provider': provider_id,
        'operation': operation,
        'request_id': uuid.uuid4().hex[:8],
    })


def setup_logging(level: str = 'INFO', log_file: Optional[str] = None) -> None:
    """Configure root logging the way the CLI expects."""
    logging.basicConfig(level=getattr(logging, str(level).upper(), logging.INFO), format=LOG_FORMAT)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding='utf-8')
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logging.getLogger().addHandler(file_handler)

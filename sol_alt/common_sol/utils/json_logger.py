from __future__ import annotations

import contextlib
import json
import logging
import sys
import threading
import traceback

from datetime import datetime
from logging import LogRecord, Filter
from typing import Any, Dict, Iterator, TYPE_CHECKING

if TYPE_CHECKING:
    from ..config import Config


_log_context = threading.local()


def get_logging_context() -> Dict[str, Any]:
    """Context fields of the current thread, e.g. the name of the signed transaction."""
    return getattr(_log_context, 'fields', dict())


@contextlib.contextmanager
def logging_context(**kwargs) -> Iterator[None]:
    old_fields = get_logging_context()
    _log_context.fields = dict(old_fields, **kwargs)
    try:
        yield
    finally:
        _log_context.fields = old_fields


class JSONFormatter(logging.Formatter):
    """One JSON object per record: the record fields, the context fields and the exception."""

    @staticmethod
    def _format_exc_info(record: LogRecord) -> Dict[str, Any]:
        exc_type, exc_value, exc_tb = record.exc_info
        return {
            'type': exc_type.__name__ if exc_type is not None else None,
            'exception': str(exc_value),
            'traceback': [
                line.strip().replace('"', '\'').replace('\n', '')
                for line in traceback.format_tb(exc_tb)
            ]
        }

    @staticmethod
    def _get_record_context(record: LogRecord) -> Dict[str, Any]:
        context = getattr(record, 'context', None)
        if isinstance(context, dict):
            return context
        elif isinstance(context, str):
            return {'context': context}
        return dict()

    def format(self, record: LogRecord) -> str:
        message_dict: Dict[str, Any] = {
            'level': record.levelname,
            'date': datetime.fromtimestamp(record.created).isoformat(),
            'logger': record.name,
            'module': f'{record.filename}:{record.lineno}',
            'thread': record.threadName,
        }

        if isinstance(record.msg, dict):
            message_dict.update(record.msg)
        else:
            message_dict['message'] = record.getMessage()

        message_dict.update(self._get_record_context(record))

        if record.exc_info:
            message_dict['exc_info'] = self._format_exc_info(record)

        return json.dumps(message_dict, default=str)


class ContextFilter(Filter):
    def filter(self, record: LogRecord) -> bool:
        context = get_logging_context()
        if context:
            record.context = context
        return True


def init_logging(config: Config, logger_name: str = 'sol_alt') -> logging.Logger:
    handler = logging.StreamHandler(sys.stdout)
    if config.log_json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter('%(asctime)s %(levelname)s %(name)s: %(message)s'))
    handler.addFilter(ContextFilter())

    logger = logging.getLogger(logger_name)
    for old_handler in list(logger.handlers):
        logger.removeHandler(old_handler)
    logger.addHandler(handler)
    logger.setLevel(config.log_level)
    return logger

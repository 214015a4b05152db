"""
Logging setup

Both formatters understand the context the service, normalizer and audit
logger attach through ``extra=``: record id, instance id, log action and
source row. JSON lines carry it as fields, text lines as a bracketed suffix.
"""

import logging
import sys
from pathlib import Path
from typing import Dict, Any, Optional
import json
from datetime import datetime, timezone


CONTEXT_FIELDS = ('recordId', 'instanceId', 'action', 'rowIndex')


def _context(record: logging.LogRecord) -> Dict[str, Any]:
    context = {}
    for name in CONTEXT_FIELDS:
        value = getattr(record, name, None)
        if value is not None:
            context[name] = value
    return context


class JSONFormatter(logging.Formatter):

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            'timestamp': datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'function': record.funcName,
        }
        entry.update(_context(record))

        if record.exc_info:
            entry['exception'] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):

    def __init__(self):
        super().__init__(
            fmt='%(asctime)s %(levelname)-7s %(name)s: %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

    def formatMessage(self, record: logging.LogRecord) -> str:
        message = super().formatMessage(record)
        context = _context(record)
        if context:
            message += ' [' + ' '.join(f"{key}={value}" for key, value in context.items()) + ']'
        return message


def setupLogging(config: Dict[str, Any], level: Optional[str] = None) -> logging.Logger:
    """
    Configure the root logger from the ``logging`` config section.

    Args:
        config: Full configuration dictionary
        level: Overrides ``logging.level`` (used by the CLI ``--log-level`` option)

    Returns:
        The root logger
    """
    settings = config.get('logging', {})

    levelName = (level or settings.get('level', 'INFO')).upper()
    output = settings.get('output', 'stderr')  # stderr, file or both
    formatter = JSONFormatter() if settings.get('format') == 'json' else TextFormatter()

    handlers = []

    if output in ('file', 'both'):
        logPath = Path(settings.get('file_path', 'logs/inventory_audit.log'))
        logPath.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(logPath, encoding='utf-8'))

    if output in ('stderr', 'both'):
        # Command output owns stdout, so console logging goes to stderr
        handlers.append(logging.StreamHandler(sys.stderr))

    root = logging.getLogger()
    root.setLevel(getattr(logging, levelName, logging.INFO))
    root.handlers = []

    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)

    logging.getLogger('asyncio').setLevel(logging.WARNING)

    root.debug(f"Logging configured: level={levelName} output={output}")
    return root

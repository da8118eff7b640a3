"""
Logging setup for the location simulator.

Defaults:
- stderr StreamHandler only
- Level INFO (overridable via env)

Env options (optional):
- MOCKLOC_LOG_LEVEL=DEBUG|INFO|WARNING|ERROR (default INFO)
- MOCKLOC_LOG_JSON=1 (JSON formatting)
- MOCKLOC_LOG_FILE=/path/to/file.log (RotatingFileHandler)
"""

from __future__ import annotations

import json
import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Optional


_INITIALIZED = False

_TRUTHY = ('1', 'true', 'yes', 'on')


class _JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            'ts': self.formatTime(record, datefmt='%Y-%m-%dT%H:%M:%S'),
            'level': record.levelname,
            'name': record.name,
            'message': record.getMessage(),
        }
        if record.exc_info:
            payload['exc'] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def _get_level(default: str = 'INFO') -> int:
    level = os.getenv('MOCKLOC_LOG_LEVEL', default).upper()
    return getattr(logging, level, logging.INFO)


def setup_logging(level: Optional[str] = None, json_format: Optional[bool] = None,
                  log_file: Optional[str] = None) -> None:
    """Configure package logging once. Safe to call multiple times.

    Args:
        level: optional level override (DEBUG/INFO/...) else from env
        json_format: optional flag to force JSON format, else from env
        log_file: optional path for a rotating log file, else from env
    """
    global _INITIALIZED
    if _INITIALIZED:
        return

    logger = logging.getLogger('mock_location')
    logger.setLevel(getattr(logging, level.upper(), logging.INFO) if level else _get_level())

    if json_format is None:
        json_format = os.getenv('MOCKLOC_LOG_JSON', '').lower() in _TRUTHY
    if json_format:
        formatter = _JSONFormatter()
    else:
        formatter = logging.Formatter('%(asctime)s %(levelname)s %(name)s %(message)s')

    sh = logging.StreamHandler(stream=sys.stderr)
    sh.setFormatter(formatter)
    logger.addHandler(sh)

    log_path = log_file or os.getenv('MOCKLOC_LOG_FILE')
    if log_path:
        try:
            Path(log_path).parent.mkdir(parents=True, exist_ok=True)
            fh = logging.handlers.RotatingFileHandler(
                log_path, maxBytes=5 * 1024 * 1024, backupCount=5, encoding='utf-8')
            fh.setFormatter(formatter)
            logger.addHandler(fh)
        except OSError:
            logger.warning("Could not open log file %s, using stderr only", log_path)

    _INITIALIZED = True

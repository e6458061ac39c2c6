"""JSON форматтер для логов сервиса."""
import json
import logging
from datetime import datetime, timezone

# Поля LogRecord, которые не попадают в вывод как extra
_RESERVED = set(vars(logging.LogRecord('', 0, '', 0, '', (), None))) | {'message', 'asctime'}


class JSONFormatter(logging.Formatter):
    def __init__(self, service: str = 'pr-reviewer', **kwargs):
        super().__init__(**kwargs)
        self.service = service

    def format(self, record: logging.LogRecord) -> str:
        log_obj = {
            'ts': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'service': self.service,
            'logger': record.name,
            'msg': record.getMessage(),
        }
        for key, value in vars(record).items():
            if key not in _RESERVED and not key.startswith('_'):
                log_obj[key] = value
        if record.exc_info and record.exc_info[1]:
            log_obj['exception'] = str(record.exc_info[1])
        return json.dumps(log_obj, default=str)

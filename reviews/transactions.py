"""
Координатор транзакций.

run(work) открывает транзакцию, передаёт в work объект UnitOfWork и
коммитит, если work отработал без исключений. Любое исключение, в том
числе KeyboardInterrupt, откатывает транзакцию и пробрасывается дальше.
Репозитории получают UnitOfWork явно и выполняют все запросы через него.
"""
import logging
from typing import Callable, Optional, TypeVar

from django.db import DEFAULT_DB_ALIAS, DatabaseError, connections, transaction

from .errors import InternalError, ServiceError

logger = logging.getLogger(__name__)

T = TypeVar('T')


class UnitOfWork:
    """Открытая транзакция на конкретном соединении."""

    def __init__(self, using: str = DEFAULT_DB_ALIAS):
        self.using = using

    def __repr__(self):
        return f"UnitOfWork(using={self.using!r})"


def db_alias(uow: Optional[UnitOfWork]) -> str:
    """Алиас БД для запроса: соединение транзакции, если она открыта, иначе соединение по умолчанию."""
    return uow.using if uow is not None else DEFAULT_DB_ALIAS


class TransactionCoordinator:
    def __init__(self, using: str = DEFAULT_DB_ALIAS, statement_timeout_ms: Optional[int] = None):
        self.using = using
        self.statement_timeout_ms = statement_timeout_ms

    def run(self, work: Callable[[UnitOfWork], T]) -> T:
        try:
            with transaction.atomic(using=self.using):
                uow = UnitOfWork(self.using)
                self._apply_statement_timeout()
                try:
                    return work(uow)
                except BaseException as exc:
                    logger.warning(
                        'transaction rolled back',
                        extra={'error_type': type(exc).__name__},
                    )
                    raise
        except ServiceError:
            raise
        except DatabaseError as exc:
            # сюда попадают ошибки begin/commit и таймауты запросов
            raise InternalError('run in transaction', exc) from exc

    def _apply_statement_timeout(self):
        if not self.statement_timeout_ms:
            return
        connection = connections[self.using]
        if connection.vendor != 'postgresql':
            return
        with connection.cursor() as cursor:
            cursor.execute('SET LOCAL statement_timeout = %d' % int(self.statement_timeout_ms))

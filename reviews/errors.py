"""
Ошибки сервисного слоя.

Каждая ошибка относится к одному из видов ErrorKind и несёт код, который
транспортный слой отдаёт клиенту. Ошибки валидации и доменные ошибки
пробрасываются наверх как есть, всё остальное заворачивается в InternalError
с именем операции.
"""
from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    VALIDATION = 'VALIDATION'
    NOT_FOUND = 'NOT_FOUND'
    CONFLICT = 'CONFLICT'
    INTERNAL = 'INTERNAL'


class ServiceError(Exception):
    kind = ErrorKind.INTERNAL
    code = 'INTERNAL'
    default_message = 'internal error'

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationFailed(ServiceError):
    kind = ErrorKind.VALIDATION
    code = 'VALIDATION'
    default_message = 'validation error'

    def __init__(self, message: Optional[str] = None, field: Optional[str] = None):
        super().__init__(message)
        self.field = field

    @classmethod
    def required(cls, field: str) -> 'ValidationFailed':
        return cls(f'{field} is required', field=field)


class BadRequest(ServiceError):
    """Тело запроса не разбирается как JSON-объект."""
    kind = ErrorKind.VALIDATION
    code = 'BAD_REQUEST'
    default_message = 'bad json request'


class TeamExists(ServiceError):
    kind = ErrorKind.CONFLICT
    code = 'TEAM_EXISTS'
    default_message = 'team_name already exists'


class TeamNotFound(ServiceError):
    kind = ErrorKind.NOT_FOUND
    code = 'NOT_FOUND'
    default_message = 'team not found'


class UserNotFound(ServiceError):
    kind = ErrorKind.NOT_FOUND
    code = 'NOT_FOUND'
    default_message = 'user not found'


class AuthorNotFound(ServiceError):
    kind = ErrorKind.NOT_FOUND
    code = 'NOT_FOUND'
    default_message = 'author not found'


class PRAlreadyExists(ServiceError):
    kind = ErrorKind.CONFLICT
    code = 'PR_EXISTS'
    default_message = 'PR id already exists'


class PRNotFound(ServiceError):
    kind = ErrorKind.NOT_FOUND
    code = 'NOT_FOUND'
    default_message = 'pull request not found'


class PRMerged(ServiceError):
    kind = ErrorKind.CONFLICT
    code = 'PR_MERGED'
    default_message = 'cannot reassign on merged PR'


class ReviewerNotAssigned(ServiceError):
    kind = ErrorKind.CONFLICT
    code = 'NOT_ASSIGNED'
    default_message = 'reviewer is not assigned to this PR'


class NoReplacementCandidate(ServiceError):
    kind = ErrorKind.CONFLICT
    code = 'NO_CANDIDATE'
    default_message = 'no active replacement candidate in team'


class InternalError(ServiceError):
    """Неожиданная ошибка хранилища, завёрнутая с контекстом операции."""

    def __init__(self, operation: str, cause: Optional[BaseException] = None):
        self.operation = operation
        self.cause = cause
        super().__init__(f'{operation}: {cause}' if cause is not None else operation)


# Статусы HTTP для кодов ошибок, используются только транспортным слоем
HTTP_STATUS_BY_CODE = {
    'BAD_REQUEST': 400,
    'VALIDATION': 400,
    'TEAM_EXISTS': 400,
    'NOT_FOUND': 404,
    'PR_EXISTS': 409,
    'PR_MERGED': 409,
    'NOT_ASSIGNED': 409,
    'NO_CANDIDATE': 409,
    'INTERNAL': 500,
}


def http_status_for(error: ServiceError) -> int:
    return HTTP_STATUS_BY_CODE.get(error.code, 500)

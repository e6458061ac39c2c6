"""
Сборка сервисов: репозитории и координатор транзакций внедряются в сервисы здесь.
"""
from django.conf import settings

from .repositories import PullRequestRepository, TeamRepository, UserRepository
from .services import PullRequestService, TeamService, UserService
from .transactions import TransactionCoordinator


def get_coordinator() -> TransactionCoordinator:
    return TransactionCoordinator(statement_timeout_ms=getattr(settings, 'DB_STATEMENT_TIMEOUT_MS', None))


def get_team_service() -> TeamService:
    return TeamService(tx=get_coordinator(), teams=TeamRepository(), users=UserRepository())


def get_user_service() -> UserService:
    return UserService(users=UserRepository())


def get_pull_request_service() -> PullRequestService:
    return PullRequestService(
        tx=get_coordinator(),
        prs=PullRequestRepository(),
        users=UserRepository(),
        reviewers_per_pr=getattr(settings, 'REVIEWERS_PER_PR', 2),
    )

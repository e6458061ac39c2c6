"""
Контракты, которые сервисы ожидают от слоя хранения.

Каждый протокол описывает ровно те операции, которые нужны конкретному
сервису, поэтому в тестах любой репозиторий можно подменить отдельно.
"""
from datetime import datetime
from typing import Callable, List, Optional, Protocol, Sequence, TypeVar

from .domain import AssignmentsStats, PullRequest, PullRequestShort, User, UserWithTeam
from .transactions import UnitOfWork

T = TypeVar('T')


class TransactionRunner(Protocol):
    def run(self, work: Callable[[UnitOfWork], T]) -> T: ...


class TeamRepository(Protocol):
    def create_team(self, name: str, uow: Optional[UnitOfWork] = None) -> None:
        """Raises DuplicateTeam if the name is taken."""

    def team_exists(self, name: str, uow: Optional[UnitOfWork] = None) -> bool: ...


class TeamUsersRepository(Protocol):
    def upsert_user(self, user: User, team_name: str, uow: Optional[UnitOfWork] = None) -> None: ...

    def get_users_by_team(self, team_name: str, uow: Optional[UnitOfWork] = None) -> List[User]: ...

    def deactivate_team_users(self, team_name: str, uow: Optional[UnitOfWork] = None) -> int: ...


class UserRepository(Protocol):
    def set_user_active(self, user_id: str, is_active: bool, uow: Optional[UnitOfWork] = None) -> UserWithTeam:
        """Raises UserMissing if there is no such user."""


class PRUserRepository(Protocol):
    def get_user_with_team(self, user_id: str, uow: Optional[UnitOfWork] = None) -> UserWithTeam:
        """Raises UserMissing if there is no such user."""

    def get_active_teammates(
        self, team_name: str, exclude_user_id: str, limit: int, uow: Optional[UnitOfWork] = None
    ) -> List[User]:
        """Up to `limit` distinct active members of the team other than `exclude_user_id`, in random order."""

    def get_random_active_teammate(
        self, team_name: str, exclude_ids: Sequence[str], uow: Optional[UnitOfWork] = None
    ) -> User:
        """One random active member not in `exclude_ids`. Raises NoCandidate if there is none."""


class PRRepository(Protocol):
    def create_pr(self, pr: PullRequest, uow: Optional[UnitOfWork] = None) -> PullRequest:
        """Raises DuplicatePullRequest on id collision."""

    def add_reviewers(self, pr_id: str, reviewer_ids: Sequence[str], uow: Optional[UnitOfWork] = None) -> None: ...

    def get_reviewer_prs(self, user_id: str, uow: Optional[UnitOfWork] = None) -> List[PullRequestShort]: ...

    def get_pr(self, pr_id: str, uow: Optional[UnitOfWork] = None) -> PullRequest:
        """Raises PullRequestMissing."""

    def update_pr_status(
        self, pr_id: str, status: str, merged_at: Optional[datetime] = None, uow: Optional[UnitOfWork] = None
    ) -> None:
        """Raises PullRequestMissing."""

    def replace_reviewer(
        self, pr_id: str, old_reviewer_id: str, new_reviewer_id: str, uow: Optional[UnitOfWork] = None
    ) -> None:
        """Raises AssignmentMissing if the old assignment is gone."""

    def get_assignments_stats(self, uow: Optional[UnitOfWork] = None) -> AssignmentsStats: ...

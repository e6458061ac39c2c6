"""
Репозитории на Django ORM.

Никаких бизнес-правил: только чтение и запись. Если передан UnitOfWork,
запрос идёт через соединение его транзакции.
"""
import logging
from datetime import datetime
from typing import List, Optional, Sequence

from django.db import IntegrityError, transaction
from django.db.models import Count

from . import domain
from .models import PullRequest, PullRequestReviewer, Team, User
from .transactions import UnitOfWork, db_alias

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Состояние, о котором сообщает слой хранения."""


class DuplicateTeam(StorageError):
    pass


class DuplicatePullRequest(StorageError):
    pass


class UserMissing(StorageError):
    pass


class PullRequestMissing(StorageError):
    pass


class AssignmentMissing(StorageError):
    pass


class NoCandidate(StorageError):
    pass


def _to_user(row: User) -> domain.User:
    return domain.User(id=row.id, username=row.username, is_active=row.is_active)


def _to_user_with_team(row: User) -> domain.UserWithTeam:
    return domain.UserWithTeam(
        id=row.id,
        username=row.username,
        is_active=row.is_active,
        team_name=row.team_id,
    )


class TeamRepository:
    def create_team(self, name: str, uow: Optional[UnitOfWork] = None) -> None:
        using = db_alias(uow)
        try:
            # точка сохранения, чтобы IntegrityError не ломал внешнюю транзакцию
            with transaction.atomic(using=using):
                Team.objects.using(using).create(name=name)
        except IntegrityError as exc:
            raise DuplicateTeam(name) from exc

    def team_exists(self, name: str, uow: Optional[UnitOfWork] = None) -> bool:
        return Team.objects.using(db_alias(uow)).filter(name=name).exists()


class UserRepository:
    """Пользователи и их членство в командах."""

    def upsert_user(self, user: domain.User, team_name: str, uow: Optional[UnitOfWork] = None) -> None:
        User.objects.using(db_alias(uow)).update_or_create(
            id=user.id,
            defaults={
                'username': user.username,
                'team_id': team_name,
                'is_active': user.is_active,
            },
        )

    def get_users_by_team(self, team_name: str, uow: Optional[UnitOfWork] = None) -> List[domain.User]:
        rows = User.objects.using(db_alias(uow)).filter(team_id=team_name).order_by('id')
        return [_to_user(row) for row in rows]

    def deactivate_team_users(self, team_name: str, uow: Optional[UnitOfWork] = None) -> int:
        return User.objects.using(db_alias(uow)).filter(team_id=team_name, is_active=True).update(is_active=False)

    def set_user_active(self, user_id: str, is_active: bool, uow: Optional[UnitOfWork] = None) -> domain.UserWithTeam:
        using = db_alias(uow)
        # чтение и запись под одной блокировкой строки
        with transaction.atomic(using=using):
            try:
                row = User.objects.using(using).select_for_update().get(id=user_id)
            except User.DoesNotExist as exc:
                raise UserMissing(user_id) from exc
            row.is_active = is_active
            row.save(using=using, update_fields=['is_active'])
        return _to_user_with_team(row)

    def get_user_with_team(self, user_id: str, uow: Optional[UnitOfWork] = None) -> domain.UserWithTeam:
        try:
            row = User.objects.using(db_alias(uow)).get(id=user_id)
        except User.DoesNotExist as exc:
            raise UserMissing(user_id) from exc
        return _to_user_with_team(row)

    def get_active_teammates(
        self, team_name: str, exclude_user_id: str, limit: int, uow: Optional[UnitOfWork] = None
    ) -> List[domain.User]:
        if limit <= 0:
            return []
        rows = (
            User.objects.using(db_alias(uow))
            .filter(team_id=team_name, is_active=True)
            .exclude(id=exclude_user_id)
            .order_by('?')[:limit]
        )
        return [_to_user(row) for row in rows]

    def get_random_active_teammate(
        self, team_name: str, exclude_ids: Sequence[str], uow: Optional[UnitOfWork] = None
    ) -> domain.User:
        exclude = {i.strip() for i in exclude_ids if i and i.strip()}
        row = (
            User.objects.using(db_alias(uow))
            .filter(team_id=team_name, is_active=True)
            .exclude(id__in=exclude)
            .order_by('?')
            .first()
        )
        if row is None:
            raise NoCandidate(team_name)
        return _to_user(row)


class PullRequestRepository:
    def create_pr(self, pr: domain.PullRequest, uow: Optional[UnitOfWork] = None) -> domain.PullRequest:
        using = db_alias(uow)
        try:
            with transaction.atomic(using=using):
                row = PullRequest.objects.using(using).create(
                    id=pr.id,
                    title=pr.title,
                    author_id=pr.author_id,
                    status=pr.status,
                    need_more_reviewers=pr.need_more_reviewers,
                )
        except IntegrityError as exc:
            raise DuplicatePullRequest(pr.id) from exc
        return self._to_pr(row, reviewers=[])

    def add_reviewers(self, pr_id: str, reviewer_ids: Sequence[str], uow: Optional[UnitOfWork] = None) -> None:
        if not reviewer_ids:
            return
        try:
            PullRequestReviewer.objects.using(db_alias(uow)).bulk_create(
                [PullRequestReviewer(pull_request_id=pr_id, user_id=user_id) for user_id in reviewer_ids]
            )
        except IntegrityError:
            logger.error('failed to add reviewers', extra={'pr_id': pr_id, 'reviewer_ids': list(reviewer_ids)})
            raise

    def get_reviewer_prs(self, user_id: str, uow: Optional[UnitOfWork] = None) -> List[domain.PullRequestShort]:
        rows = PullRequest.objects.using(db_alias(uow)).filter(assignments__user_id=user_id).order_by('id')
        return [
            domain.PullRequestShort(id=row.id, title=row.title, author_id=row.author_id, status=row.status)
            for row in rows
        ]

    def get_pr(self, pr_id: str, uow: Optional[UnitOfWork] = None) -> domain.PullRequest:
        using = db_alias(uow)
        try:
            row = PullRequest.objects.using(using).get(id=pr_id)
        except PullRequest.DoesNotExist as exc:
            raise PullRequestMissing(pr_id) from exc
        reviewers = list(
            PullRequestReviewer.objects.using(using)
            .filter(pull_request_id=pr_id)
            .order_by('user_id')
            .values_list('user_id', flat=True)
        )
        return self._to_pr(row, reviewers=reviewers)

    def update_pr_status(
        self, pr_id: str, status: str, merged_at: Optional[datetime] = None, uow: Optional[UnitOfWork] = None
    ) -> None:
        fields = {'status': status}
        if merged_at is not None:
            fields['merged_at'] = merged_at
        updated = PullRequest.objects.using(db_alias(uow)).filter(id=pr_id).update(**fields)
        if not updated:
            raise PullRequestMissing(pr_id)

    def replace_reviewer(
        self, pr_id: str, old_reviewer_id: str, new_reviewer_id: str, uow: Optional[UnitOfWork] = None
    ) -> None:
        assignments = PullRequestReviewer.objects.using(db_alias(uow))
        deleted, _ = assignments.filter(pull_request_id=pr_id, user_id=old_reviewer_id).delete()
        if not deleted:
            raise AssignmentMissing(f'{pr_id}/{old_reviewer_id}')
        assignments.create(pull_request_id=pr_id, user_id=new_reviewer_id)

    def get_assignments_stats(self, uow: Optional[UnitOfWork] = None) -> domain.AssignmentsStats:
        assignments = PullRequestReviewer.objects.using(db_alias(uow))
        by_user = (
            assignments.values('user_id')
            .annotate(assignments=Count('id'))
            .order_by('-assignments', 'user_id')
        )
        by_pr = (
            assignments.values('pull_request_id')
            .annotate(reviewers=Count('id'))
            .order_by('-reviewers', 'pull_request_id')
        )
        return domain.AssignmentsStats(
            by_user=[domain.UserAssignmentsStat(user_id=r['user_id'], assignments=r['assignments']) for r in by_user],
            by_pr=[
                domain.PRAssignmentsStat(pull_request_id=r['pull_request_id'], reviewers=r['reviewers'])
                for r in by_pr
            ],
        )

    @staticmethod
    def _to_pr(row: PullRequest, reviewers: List[str]) -> domain.PullRequest:
        return domain.PullRequest(
            id=row.id,
            title=row.title,
            author_id=row.author_id,
            status=row.status,
            reviewers=reviewers,
            need_more_reviewers=row.need_more_reviewers,
            created_at=row.created_at,
            merged_at=row.merged_at,
        )

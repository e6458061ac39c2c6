import logging
from typing import Iterable, List, Optional

from django.conf import settings
from django.utils import timezone

from . import domain
from .errors import (
    AuthorNotFound,
    InternalError,
    NoReplacementCandidate,
    PRAlreadyExists,
    PRMerged,
    PRNotFound,
    ReviewerNotAssigned,
    TeamExists,
    TeamNotFound,
    UserNotFound,
    ValidationFailed,
)
from .interfaces import (
    PRRepository,
    PRUserRepository,
    TeamRepository,
    TeamUsersRepository,
    TransactionRunner,
    UserRepository,
)
from .repositories import (
    AssignmentMissing,
    DuplicatePullRequest,
    DuplicateTeam,
    NoCandidate,
    PullRequestMissing,
    UserMissing,
)

logger = logging.getLogger(__name__)


def _clean(value, field: str) -> str:
    if value is None:
        return ''
    if not isinstance(value, str):
        raise ValidationFailed(f'{field} must be a string', field=field)
    return value.strip()


def _require(value, field: str) -> str:
    value = _clean(value, field)
    if not value:
        raise ValidationFailed.required(field)
    return value


def _internal(operation: str, exc: Exception) -> InternalError:
    logger.error('%s failed', operation, exc_info=exc)
    return InternalError(operation, exc)


class TeamService:
    """
    Сервис для управления командами и их участниками
    """

    def __init__(self, tx: TransactionRunner, teams: TeamRepository, users: TeamUsersRepository):
        self.tx = tx
        self.teams = teams
        self.users = users

    def create_team(self, team: Optional[domain.Team]) -> domain.Team:
        """
        Создает команду и добавляет/обновляет её участников одной транзакцией
        """
        if team is None:
            raise ValidationFailed('empty body')
        name = _require(team.name, 'team_name')
        members = self._unique_members(team.members or [])
        normalized = domain.Team(name=name, members=members)

        def work(uow):
            try:
                self.teams.create_team(name, uow=uow)
            except DuplicateTeam:
                raise TeamExists()
            except Exception as exc:
                raise _internal('create team', exc) from exc

            for member in members:
                try:
                    self.users.upsert_user(member, name, uow=uow)
                except Exception as exc:
                    raise _internal('upsert user', exc) from exc

        self.tx.run(work)
        logger.info('team created', extra={'team_name': name, 'members': len(members)})
        return normalized

    @staticmethod
    def _unique_members(members: Iterable[Optional[domain.User]]) -> List[domain.User]:
        # Пустые записи пропускаем, повторы по user_id отбрасываем, оставляя первую
        seen = set()
        unique = []
        for member in members:
            if member is None:
                continue
            user_id = _clean(member.id, 'user_id')
            username = _clean(member.username, 'username')
            if not user_id or not username:
                raise ValidationFailed('member requires user_id and username', field='members')
            if not isinstance(member.is_active, bool):
                raise ValidationFailed('is_active must be a boolean', field='is_active')
            if user_id in seen:
                continue
            seen.add(user_id)
            unique.append(domain.User(id=user_id, username=username, is_active=member.is_active))
        return unique

    def get_team_users(self, team_name: str) -> List[domain.User]:
        team_name = _require(team_name, 'team_name')
        self._ensure_exists(team_name)
        try:
            users = self.users.get_users_by_team(team_name)
        except Exception as exc:
            raise _internal('get users by team', exc) from exc
        return list(users or [])

    def deactivate_team_users(self, team_name: str) -> domain.TeamDeactivation:
        """
        Массовая деактивация всех активных пользователей команды
        """
        team_name = _require(team_name, 'team_name')
        self._ensure_exists(team_name)
        try:
            count = self.users.deactivate_team_users(team_name)
        except Exception as exc:
            raise _internal('deactivate team users', exc) from exc
        logger.info('team users deactivated', extra={'team_name': team_name, 'count': count})
        return domain.TeamDeactivation(team_name=team_name, deactivated_count=count)

    def _ensure_exists(self, team_name: str):
        try:
            exists = self.teams.team_exists(team_name)
        except Exception as exc:
            raise _internal('check team exists', exc) from exc
        if not exists:
            raise TeamNotFound(f"team '{team_name}' not found")


class UserService:
    """
    Сервис для управления пользователями
    """

    def __init__(self, users: UserRepository):
        self.users = users

    def set_user_active(self, user_id: str, is_active: bool) -> domain.UserWithTeam:
        user_id = _require(user_id, 'user_id')
        if not isinstance(is_active, bool):
            raise ValidationFailed('is_active must be a boolean', field='is_active')
        try:
            user = self.users.set_user_active(user_id, is_active)
        except UserMissing:
            raise UserNotFound(f"user '{user_id}' not found")
        except Exception as exc:
            raise _internal('set user active', exc) from exc
        logger.info('user activity changed', extra={'user_id': user_id, 'is_active': is_active})
        return user


class PullRequestService:
    """
    Сервис для управления Pull Request'ами: назначение, мерж, переназначение и статистика
    """

    def __init__(
        self,
        tx: TransactionRunner,
        prs: PRRepository,
        users: PRUserRepository,
        reviewers_per_pr: Optional[int] = None,
    ):
        self.tx = tx
        self.prs = prs
        self.users = users
        if reviewers_per_pr is None:
            reviewers_per_pr = getattr(settings, 'REVIEWERS_PER_PR', 2)
        self.reviewers_per_pr = reviewers_per_pr

    def create_pull_request(self, pr_id: str, title: str, author_id: str) -> domain.PullRequest:
        pr_id = _require(pr_id, 'pull_request_id')
        title = _require(title, 'pull_request_name')
        author_id = _require(author_id, 'author_id')

        def work(uow):
            try:
                author = self.users.get_user_with_team(author_id, uow=uow)
            except UserMissing:
                raise AuthorNotFound(f"author '{author_id}' not found")
            except Exception as exc:
                raise _internal('get author', exc) from exc

            team_name = _clean(author.team_name, 'team_name')
            if not team_name:
                raise TeamNotFound(f"author '{author_id}' has no team")

            # Случайные активные участники команды автора, не больше reviewers_per_pr
            try:
                teammates = self.users.get_active_teammates(team_name, author.id, self.reviewers_per_pr, uow=uow)
            except Exception as exc:
                raise _internal('get teammates', exc) from exc
            reviewers = self._distinct_reviewers(teammates, author.id)
            need_more = len(reviewers) < self.reviewers_per_pr

            draft = domain.PullRequest(
                id=pr_id,
                title=title,
                author_id=author.id,
                status=domain.STATUS_OPEN,
                need_more_reviewers=need_more,
            )
            try:
                created = self.prs.create_pr(draft, uow=uow)
            except DuplicatePullRequest:
                raise PRAlreadyExists()
            except Exception as exc:
                raise _internal('create pr', exc) from exc

            try:
                self.prs.add_reviewers(created.id, reviewers, uow=uow)
            except Exception as exc:
                raise _internal('add reviewers', exc) from exc

            created.reviewers = reviewers
            created.need_more_reviewers = need_more
            return created

        pr = self.tx.run(work)
        logger.info(
            'pull request created',
            extra={'pr_id': pr.id, 'reviewers': pr.reviewers, 'need_more_reviewers': pr.need_more_reviewers},
        )
        return pr

    def _distinct_reviewers(self, teammates: Iterable[domain.User], author_id: str) -> List[str]:
        reviewers = []
        for teammate in teammates or []:
            if teammate.id == author_id or teammate.id in reviewers:
                continue
            reviewers.append(teammate.id)
        return reviewers[:self.reviewers_per_pr]

    def get_user_reviews(self, user_id: str) -> List[domain.PullRequestShort]:
        user_id = _require(user_id, 'user_id')
        try:
            self.users.get_user_with_team(user_id)
        except UserMissing:
            raise UserNotFound(f"user '{user_id}' not found")
        except Exception as exc:
            raise _internal('get user', exc) from exc

        try:
            prs = self.prs.get_reviewer_prs(user_id)
        except Exception as exc:
            raise _internal('get user reviews', exc) from exc
        return list(prs or [])

    def merge_pull_request(self, pr_id: str) -> domain.PullRequest:
        pr_id = _require(pr_id, 'pull_request_id')

        def work(uow):
            pr = self._get_pr(pr_id, uow)
            # Повторный мерж ничего не пишет
            if pr.is_merged:
                return pr
            merged_at = timezone.now()
            try:
                self.prs.update_pr_status(pr_id, domain.STATUS_MERGED, merged_at=merged_at, uow=uow)
            except PullRequestMissing:
                raise PRNotFound(f"PR '{pr_id}' not found")
            except Exception as exc:
                raise _internal('update pr status', exc) from exc
            pr.status = domain.STATUS_MERGED
            pr.merged_at = merged_at
            logger.info('pull request merged', extra={'pr_id': pr_id})
            return pr

        return self.tx.run(work)

    def reassign_reviewer(self, pr_id: str, old_reviewer_id: str) -> domain.ReassignResult:
        pr_id = _require(pr_id, 'pull_request_id')
        old_reviewer_id = _require(old_reviewer_id, 'old_user_id')

        def work(uow):
            pr = self._get_pr(pr_id, uow)
            if pr.is_merged:
                raise PRMerged()
            if old_reviewer_id not in pr.reviewers:
                raise ReviewerNotAssigned()

            try:
                old_reviewer = self.users.get_user_with_team(old_reviewer_id, uow=uow)
            except UserMissing:
                raise UserNotFound(f"user '{old_reviewer_id}' not found")
            except Exception as exc:
                raise _internal('get reviewer', exc) from exc
            team_name = _clean(old_reviewer.team_name, 'team_name')
            if not team_name:
                raise TeamNotFound(f"reviewer '{old_reviewer_id}' has no team")

            # Автор и все текущие ревьюверы не могут стать заменой
            exclude = [old_reviewer_id, pr.author_id] + [r for r in pr.reviewers if r != old_reviewer_id]
            try:
                replacement = self.users.get_random_active_teammate(team_name, exclude, uow=uow)
            except NoCandidate:
                raise NoReplacementCandidate()
            except Exception as exc:
                raise _internal('get replacement', exc) from exc

            try:
                self.prs.replace_reviewer(pr_id, old_reviewer_id, replacement.id, uow=uow)
            except AssignmentMissing:
                raise ReviewerNotAssigned()
            except Exception as exc:
                raise _internal('replace reviewer', exc) from exc

            pr.reviewers = [replacement.id if r == old_reviewer_id else r for r in pr.reviewers]
            return domain.ReassignResult(pr=pr, replaced_by=replacement.id)

        result = self.tx.run(work)
        logger.info(
            'reviewer reassigned',
            extra={'pr_id': pr_id, 'old_reviewer': old_reviewer_id, 'new_reviewer': result.replaced_by},
        )
        return result

    def get_assignments_stats(self) -> domain.AssignmentsStats:
        try:
            stats = self.prs.get_assignments_stats()
        except Exception as exc:
            raise _internal('get assignments stats', exc) from exc
        by_user = sorted(stats.by_user, key=lambda s: (-s.assignments, s.user_id))
        by_pr = sorted(stats.by_pr, key=lambda s: (-s.reviewers, s.pull_request_id))
        return domain.AssignmentsStats(by_user=by_user, by_pr=by_pr)

    def _get_pr(self, pr_id: str, uow) -> domain.PullRequest:
        try:
            return self.prs.get_pr(pr_id, uow=uow)
        except PullRequestMissing:
            raise PRNotFound(f"PR '{pr_id}' not found")
        except Exception as exc:
            raise _internal('get pr', exc) from exc

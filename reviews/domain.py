"""
Записи, которыми сервисы обмениваются с репозиториями.
Никакой зависимости от ORM: репозитории сами переводят строки БД в эти объекты.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

STATUS_OPEN = 'OPEN'
STATUS_MERGED = 'MERGED'


@dataclass
class User:
    id: str
    username: str
    is_active: bool = True


@dataclass
class UserWithTeam(User):
    team_name: Optional[str] = None


@dataclass
class Team:
    name: str
    members: List[Optional[User]] = field(default_factory=list)


@dataclass
class PullRequest:
    id: str
    title: str
    author_id: str
    status: str = STATUS_OPEN
    reviewers: List[str] = field(default_factory=list)
    need_more_reviewers: bool = False
    created_at: Optional[datetime] = None
    merged_at: Optional[datetime] = None

    @property
    def is_merged(self) -> bool:
        return self.status == STATUS_MERGED


@dataclass
class PullRequestShort:
    id: str
    title: str
    author_id: str
    status: str


@dataclass
class ReassignResult:
    pr: PullRequest
    replaced_by: str


@dataclass
class TeamDeactivation:
    team_name: str
    deactivated_count: int


@dataclass
class UserAssignmentsStat:
    user_id: str
    assignments: int


@dataclass
class PRAssignmentsStat:
    pull_request_id: str
    reviewers: int


@dataclass
class AssignmentsStats:
    by_user: List[UserAssignmentsStat] = field(default_factory=list)
    by_pr: List[PRAssignmentsStat] = field(default_factory=list)

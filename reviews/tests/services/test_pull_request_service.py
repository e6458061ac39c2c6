from django.db import DatabaseError
from django.test import SimpleTestCase

from reviews import domain
from reviews.errors import (
    AuthorNotFound,
    ErrorKind,
    InternalError,
    NoReplacementCandidate,
    PRAlreadyExists,
    PRMerged,
    PRNotFound,
    ReviewerNotAssigned,
    TeamNotFound,
    UserNotFound,
    ValidationFailed,
)
from reviews.repositories import AssignmentMissing
from reviews.services import PullRequestService
from reviews.tests.fakes import FakePullRequestRepository, FakeTransaction, FakeUserRepository, Store


NON_STRINGS = (123, {}, [])


class PullRequestServiceTest(SimpleTestCase):
    def setUp(self):
        self.store = Store()
        self.tx = FakeTransaction()
        self.users = FakeUserRepository(self.store)
        self.prs = FakePullRequestRepository(self.store)
        self.service = PullRequestService(self.tx, self.prs, self.users, reviewers_per_pr=2)

        for user_id in ("author1", "reviewer1", "reviewer2", "reviewer3"):
            self.users.add(user_id, team_name="backend")
        self.users.add("inactive1", team_name="backend", is_active=False)
        self.users.add("outsider", team_name="frontend")

    def test_create_pull_request_success(self):
        """Тест успешного создания PR"""
        pr = self.service.create_pull_request(" pr-1 ", " Test PR ", " author1 ")

        self.assertEqual(pr.id, "pr-1")
        self.assertEqual(pr.title, "Test PR")
        self.assertEqual(pr.author_id, "author1")
        self.assertEqual(pr.status, domain.STATUS_OPEN)
        self.assertEqual(len(pr.reviewers), 2)
        self.assertFalse(pr.need_more_reviewers)
        self.assertEqual(self.store.assignments["pr-1"], pr.reviewers)
        self.assertEqual(self.tx.runs, 1)

    def test_create_pull_request_reviewer_invariants(self):
        """Тест: ревьюверы различны, не автор, активны и из команды автора"""
        for i in range(20):
            pr = self.service.create_pull_request(f"pr-{i}", "Test PR", "author1")

            self.assertLessEqual(len(pr.reviewers), 2)
            self.assertNotIn("author1", pr.reviewers)
            self.assertEqual(len(set(pr.reviewers)), len(pr.reviewers))
            self.assertTrue(set(pr.reviewers) <= {"reviewer1", "reviewer2", "reviewer3"})

    def test_create_pull_request_passes_uow_to_repositories(self):
        """Тест: все вызовы внутри транзакции получают один и тот же UnitOfWork"""
        seen = []
        original = self.prs.create_pr

        def create_pr(pr, uow=None):
            seen.append(uow)
            return original(pr, uow=uow)

        self.prs.create_pr = create_pr
        self.service.create_pull_request("pr-1", "Test PR", "author1")

        self.assertEqual(seen, [self.tx.units[0]])

    def test_create_pull_request_duplicate(self):
        """Тест создания дубликата PR"""
        self.service.create_pull_request("pr-1", "Test PR", "author1")

        with self.assertRaises(PRAlreadyExists) as context:
            self.service.create_pull_request("pr-1", "Another PR", "author1")

        self.assertEqual(context.exception.code, "PR_EXISTS")

    def test_create_pull_request_author_not_found(self):
        """Тест создания PR с несуществующим автором"""
        with self.assertRaises(AuthorNotFound) as context:
            self.service.create_pull_request("pr-1", "Test PR", "nonexistent")

        self.assertEqual(context.exception.kind, ErrorKind.NOT_FOUND)
        self.assertEqual(self.prs.mutating_calls, 0)

    def test_create_pull_request_author_no_team(self):
        """Тест создания PR когда у автора нет команды"""
        self.users.add("no_team")

        with self.assertRaises(TeamNotFound):
            self.service.create_pull_request("pr-1", "Test PR", "no_team")

    def test_create_pull_request_validation(self):
        """Тест: все поля обязательны"""
        for args, field in (
            (("", "Test PR", "author1"), "pull_request_id"),
            (("pr-1", "  ", "author1"), "pull_request_name"),
            (("pr-1", "Test PR", None), "author_id"),
        ):
            with self.assertRaises(ValidationFailed) as context:
                self.service.create_pull_request(*args)
            self.assertEqual(context.exception.field, field)

        self.assertEqual(self.tx.runs, 0)

    def test_create_pull_request_insufficient_reviewers(self):
        """Тест создания PR когда недостаточно ревьюверов"""
        self.store.users["reviewer2"].is_active = False
        self.store.users["reviewer3"].is_active = False

        pr = self.service.create_pull_request("pr-1", "Test PR", "author1")

        self.assertEqual(pr.reviewers, ["reviewer1"])
        self.assertTrue(pr.need_more_reviewers)

    def test_create_pull_request_no_reviewers(self):
        """Тест создания PR когда нет доступных ревьюверов"""
        for user_id in ("reviewer1", "reviewer2", "reviewer3"):
            self.store.users[user_id].is_active = False

        pr = self.service.create_pull_request("pr-1", "Test PR", "author1")

        self.assertEqual(pr.reviewers, [])
        self.assertTrue(pr.need_more_reviewers)

    def test_create_pull_request_add_reviewers_failure(self):
        """Тест: ошибка при назначении ревьюверов заворачивается с контекстом"""
        self.prs.fail("add_reviewers", DatabaseError("insert failed"))

        with self.assertRaises(InternalError) as context:
            self.service.create_pull_request("pr-1", "Test PR", "author1")

        self.assertEqual(str(context.exception), "add reviewers: insert failed")

    def test_get_user_reviews_success(self):
        """Тест получения PR, где пользователь назначен ревьювером"""
        self.prs.add("pr-1", "author1", reviewers=["reviewer1"])
        self.prs.add("pr-2", "author1", reviewers=["reviewer1", "reviewer2"])
        self.prs.add("pr-3", "author1", reviewers=["reviewer2"])

        prs = self.service.get_user_reviews("reviewer1")

        self.assertEqual([pr.id for pr in prs], ["pr-1", "pr-2"])

    def test_get_user_reviews_empty_list(self):
        """Тест: у пользователя без назначений пустой список, а не ошибка"""
        prs = self.service.get_user_reviews("reviewer3")

        self.assertEqual(prs, [])
        self.assertIsNotNone(prs)

    def test_get_user_reviews_user_not_found(self):
        """Тест получения PR несуществующего пользователя"""
        with self.assertRaises(UserNotFound):
            self.service.get_user_reviews("nonexistent")

        self.assertEqual(self.prs.calls["get_reviewer_prs"], 0)

    def test_get_user_reviews_validation(self):
        with self.assertRaises(ValidationFailed):
            self.service.get_user_reviews(" ")

    def test_merge_pull_request_success(self):
        """Тест успешного мержа PR"""
        self.prs.add("pr-1", "author1", reviewers=["reviewer1"])

        pr = self.service.merge_pull_request("pr-1")

        self.assertEqual(pr.status, domain.STATUS_MERGED)
        self.assertIsNotNone(pr.merged_at)
        self.assertEqual(self.store.prs["pr-1"].status, domain.STATUS_MERGED)
        self.assertEqual(self.prs.calls["update_pr_status"], 1)

    def test_merge_pull_request_idempotent(self):
        """Тест идемпотентности мержа PR: второй вызов ничего не пишет"""
        self.prs.add("pr-1", "author1")

        first = self.service.merge_pull_request("pr-1")
        second = self.service.merge_pull_request("pr-1")

        self.assertEqual(second.status, domain.STATUS_MERGED)
        self.assertEqual(second.merged_at, first.merged_at)
        self.assertEqual(self.prs.calls["update_pr_status"], 1)
        self.assertEqual(self.prs.calls["get_pr"], 2)

    def test_merge_pull_request_not_found(self):
        """Тест мержа несуществующего PR"""
        with self.assertRaises(PRNotFound):
            self.service.merge_pull_request("nonexistent")

    def test_merge_pull_request_validation(self):
        with self.assertRaises(ValidationFailed):
            self.service.merge_pull_request("")

    def test_reassign_reviewer_success(self):
        """Тест успешного переназначения ревьювера"""
        self.prs.add("pr-1", "author1", reviewers=["reviewer1", "reviewer2"])

        result = self.service.reassign_reviewer("pr-1", "reviewer1")

        self.assertEqual(result.replaced_by, "reviewer3")
        # Порядок сохраняется: старый id заменён на месте
        self.assertEqual(result.pr.reviewers, ["reviewer3", "reviewer2"])
        self.assertEqual(sorted(self.store.assignments["pr-1"]), ["reviewer2", "reviewer3"])

    def test_reassign_reviewer_excludes_author_and_current_reviewers(self):
        """Тест: замена не может быть автором, старым или текущим ревьювером"""
        self.prs.add("pr-1", "author1", reviewers=["reviewer1", "reviewer2"])

        self.service.reassign_reviewer("pr-1", "reviewer1")

        self.assertEqual(
            set(self.users.last_exclude),
            {"author1", "reviewer1", "reviewer2"},
        )

    def test_reassign_reviewer_never_returns_assigned(self):
        """Тест: замена никогда не совпадает со старым или оставшимся ревьювером"""
        for i in range(10):
            self.users.add(f"extra{i}", team_name="backend")
        self.prs.add("pr-1", "author1", reviewers=["reviewer1", "reviewer2"])

        for _ in range(10):
            current = self.prs.get_pr("pr-1").reviewers
            old = current[0]
            result = self.service.reassign_reviewer("pr-1", old)

            self.assertNotIn(result.replaced_by, current)
            self.assertNotEqual(result.replaced_by, "author1")
            self.assertEqual(len(result.pr.reviewers), 2)

    def test_reassign_reviewer_merged_pr(self):
        """Тест переназначения на мерженом PR"""
        self.prs.add("pr-1", "author1", reviewers=["reviewer1"], status=domain.STATUS_MERGED)

        with self.assertRaises(PRMerged) as context:
            self.service.reassign_reviewer("pr-1", "reviewer1")

        self.assertEqual(context.exception.code, "PR_MERGED")
        self.assertEqual(self.prs.mutating_calls, 0)
        self.assertEqual(self.users.calls["get_random_active_teammate"], 0)

    def test_reassign_reviewer_not_assigned(self):
        """Тест переназначения не назначенного ревьювера"""
        self.prs.add("pr-1", "author1", reviewers=["reviewer1"])

        with self.assertRaises(ReviewerNotAssigned) as context:
            self.service.reassign_reviewer("pr-1", "reviewer2")

        self.assertEqual(context.exception.code, "NOT_ASSIGNED")
        self.assertEqual(self.prs.mutating_calls, 0)

    def test_reassign_reviewer_assignment_vanished(self):
        """Тест: назначение пропало между чтением и заменой"""
        self.prs.add("pr-1", "author1", reviewers=["reviewer1"])
        self.prs.fail("replace_reviewer", AssignmentMissing("reviewer1"))

        with self.assertRaises(ReviewerNotAssigned):
            self.service.reassign_reviewer("pr-1", "reviewer1")

    def test_reassign_reviewer_no_candidates(self):
        """Тест когда нет кандидатов для переназначения"""
        self.prs.add("pr-1", "author1", reviewers=["reviewer1", "reviewer2"])
        self.store.users["reviewer3"].is_active = False

        with self.assertRaises(NoReplacementCandidate) as context:
            self.service.reassign_reviewer("pr-1", "reviewer1")

        self.assertEqual(context.exception.code, "NO_CANDIDATE")
        self.assertEqual(self.prs.calls["replace_reviewer"], 0)

    def test_reassign_reviewer_reviewer_no_team(self):
        """Тест переназначения когда у ревьювера нет команды"""
        self.users.add("no_team")
        self.prs.add("pr-1", "author1", reviewers=["no_team"])

        with self.assertRaises(TeamNotFound):
            self.service.reassign_reviewer("pr-1", "no_team")

    def test_reassign_reviewer_user_not_found(self):
        """Тест: ревьювер назначен, но пользователя уже нет"""
        self.prs.add("pr-1", "author1", reviewers=["ghost"])

        with self.assertRaises(UserNotFound):
            self.service.reassign_reviewer("pr-1", "ghost")

    def test_reassign_reviewer_pr_not_found(self):
        """Тест переназначения для несуществующего PR"""
        with self.assertRaises(PRNotFound):
            self.service.reassign_reviewer("nonexistent", "reviewer1")

    def test_reassign_reviewer_validation(self):
        with self.assertRaises(ValidationFailed) as context:
            self.service.reassign_reviewer("pr-1", "")

        self.assertEqual(context.exception.field, "old_user_id")

    def test_non_string_fields_rejected(self):
        """Тест: идентификаторы и название должны быть строками"""
        for value in NON_STRINGS:
            for call, field in (
                (lambda v: self.service.create_pull_request(v, "Test PR", "author1"), "pull_request_id"),
                (lambda v: self.service.create_pull_request("pr-1", v, "author1"), "pull_request_name"),
                (lambda v: self.service.create_pull_request("pr-1", "Test PR", v), "author_id"),
                (lambda v: self.service.get_user_reviews(v), "user_id"),
                (lambda v: self.service.merge_pull_request(v), "pull_request_id"),
                (lambda v: self.service.reassign_reviewer(v, "reviewer1"), "pull_request_id"),
                (lambda v: self.service.reassign_reviewer("pr-1", v), "old_user_id"),
            ):
                with self.subTest(value=value, field=field):
                    with self.assertRaises(ValidationFailed) as context:
                        call(value)
                    self.assertEqual(context.exception.field, field)

        self.assertEqual(self.tx.runs, 0)
        self.assertEqual(self.store.prs, {})

    def test_explicit_zero_reviewers_per_pr(self):
        """Тест: явно заданный ноль не подменяется настройкой"""
        service = PullRequestService(self.tx, self.prs, self.users, reviewers_per_pr=0)

        pr = service.create_pull_request("pr-1", "Test PR", "author1")

        self.assertEqual(service.reviewers_per_pr, 0)
        self.assertEqual(pr.reviewers, [])
        self.assertFalse(pr.need_more_reviewers)

    def test_get_assignments_stats_ordering(self):
        """Тест: статистика упорядочена по убыванию, при равенстве по id"""
        self.prs.add("pr-b", "author1", reviewers=["reviewer2", "reviewer1"])
        self.prs.add("pr-a", "author1", reviewers=["reviewer3", "reviewer1"])
        self.prs.add("pr-c", "author1", reviewers=["reviewer3"])

        stats = self.service.get_assignments_stats()

        self.assertEqual(
            [(s.user_id, s.assignments) for s in stats.by_user],
            [("reviewer1", 2), ("reviewer3", 2), ("reviewer2", 1)],
        )
        self.assertEqual(
            [(s.pull_request_id, s.reviewers) for s in stats.by_pr],
            [("pr-a", 2), ("pr-b", 2), ("pr-c", 1)],
        )

    def test_get_assignments_stats_error(self):
        self.prs.fail("get_assignments_stats", DatabaseError("timeout"))

        with self.assertRaises(InternalError) as context:
            self.service.get_assignments_stats()

        self.assertEqual(context.exception.operation, "get assignments stats")


class ReviewWorkflowTest(SimpleTestCase):
    """Полный сценарий на in-memory репозиториях"""

    def test_platform_scenario(self):
        from reviews.services import TeamService
        from reviews.tests.fakes import FakeTeamRepository

        store = Store()
        tx = FakeTransaction()
        users = FakeUserRepository(store)
        prs = FakePullRequestRepository(store)
        teams = TeamService(tx, FakeTeamRepository(store), users)
        service = PullRequestService(tx, prs, users, reviewers_per_pr=2)

        teams.create_team(domain.Team(name="platform", members=[
            domain.User(id=user_id, username=user_id) for user_id in ("author", "r1", "r2", "r3")
        ]))

        pr = service.create_pull_request("pr-1", "add feature", "author")
        self.assertEqual(len(pr.reviewers), 2)
        self.assertTrue(set(pr.reviewers) <= {"r1", "r2", "r3"})
        self.assertFalse(pr.need_more_reviewers)

        first = pr.reviewers[0]
        expected = ({"r1", "r2", "r3"} - set(pr.reviewers)).pop()
        result = service.reassign_reviewer("pr-1", first)
        self.assertEqual(result.replaced_by, expected)

        merged = service.merge_pull_request("pr-1")
        self.assertEqual(merged.status, domain.STATUS_MERGED)

        stats = service.get_assignments_stats()
        self.assertEqual([(s.pull_request_id, s.reviewers) for s in stats.by_pr], [("pr-1", 2)])
        self.assertEqual(sum(s.assignments for s in stats.by_user), 2)

import random

from django.test import TestCase

from reviews.exceptions import NotFound, TeamExists
from reviews.models import PullRequest, ReviewerAssignment, Team, User
from reviews.services import TeamService


class TeamServiceTest(TestCase):
    def setUp(self):
        self.service = TeamService()
        self.team_name = "backend"
        self.members_data = [
            {"user_id": "u1", "username": "Charlie", "is_active": True},
            {"user_id": "u2", "username": "Alice", "is_active": True},
            {"user_id": "u3", "username": "Bob", "is_active": False},
        ]

    def test_create_team_with_members_success(self):
        """Тест успешного создания команды с пользователями"""
        team = self.service.create_team_with_members(self.team_name, self.members_data)

        self.assertEqual(team.name, self.team_name)
        self.assertEqual(team.members.count(), 3)
        self.assertEqual([user.username for user in team.member_list], ["Alice", "Bob", "Charlie"])

        # Проверяем созданных пользователей
        user1 = User.objects.get(id="u1")
        self.assertEqual(user1.username, "Charlie")
        self.assertTrue(user1.is_active)
        self.assertEqual(user1.team, team)

    def test_create_team_duplicate(self):
        """Тест создания дубликата команды"""
        self.service.create_team_with_members(self.team_name, self.members_data)

        with self.assertRaises(TeamExists) as context:
            self.service.create_team_with_members(self.team_name, [])

        self.assertEqual(context.exception.code, 'TEAM_EXISTS')
        self.assertEqual(context.exception.message, 'team_name already exists')

    def test_create_team_duplicate_with_members_changes_nothing(self):
        """Тест что при TEAM_EXISTS пользователи не обновляются"""
        self.service.create_team_with_members(self.team_name, self.members_data)

        with self.assertRaises(TeamExists):
            self.service.create_team_with_members(
                self.team_name,
                [{"user_id": "u1", "username": "Renamed", "is_active": False}],
            )

        user1 = User.objects.get(id="u1")
        self.assertEqual(user1.username, "Charlie")
        self.assertTrue(user1.is_active)

    def test_create_team_empty_members(self):
        """Тест создания команды без пользователей"""
        team = self.service.create_team_with_members("empty_team", [])

        self.assertEqual(team.name, "empty_team")
        self.assertEqual(team.member_list, [])

    def test_create_team_moves_existing_user(self):
        """Тест что существующий пользователь переезжает в новую команду с новыми данными"""
        self.service.create_team_with_members(self.team_name, self.members_data)

        team = self.service.create_team_with_members(
            "frontend",
            [{"user_id": "u3", "username": "Bobby", "is_active": True}],
        )

        user = User.objects.get(id="u3")
        self.assertEqual(user.team, team)
        self.assertEqual(user.username, "Bobby")
        self.assertTrue(user.is_active)
        self.assertEqual(Team.objects.get(name=self.team_name).members.count(), 2)

    def test_get_team_with_members_success(self):
        """Тест успешного получения команды с пользователями"""
        self.service.create_team_with_members(self.team_name, self.members_data)

        team = self.service.get_team_with_members(self.team_name)

        self.assertEqual(team.name, self.team_name)
        self.assertEqual([user.id for user in team.member_list], ["u2", "u3", "u1"])

    def test_get_team_with_members_not_found(self):
        """Тест получения несуществующей команды"""
        with self.assertRaises(NotFound):
            self.service.get_team_with_members("nonexistent")


class BulkDeactivateTest(TestCase):
    def setUp(self):
        self.service = TeamService(rng=random.Random(0))
        self.service.create_team_with_members("backend", [
            {"user_id": "a", "username": "Author", "is_active": True},
            {"user_id": "b", "username": "Bob", "is_active": True},
            {"user_id": "c", "username": "Carol", "is_active": True},
            {"user_id": "d", "username": "Dave", "is_active": True},
        ])
        self.pr = PullRequest.objects.create(id="pr-1", name="Test PR", author_id="a")
        ReviewerAssignment.objects.create(pull_request=self.pr, user_id="b")

    def test_deactivates_and_reassigns(self):
        result = self.service.bulk_deactivate_team_members("backend", ["b"])

        self.assertEqual(result['deactivated_user_ids'], ["b"])
        self.assertEqual(result['reassigned_count'], 1)
        self.assertFalse(User.objects.get(id="b").is_active)

        reviewers = set(self.pr.assignments.values_list('user_id', flat=True))
        self.assertEqual(len(reviewers), 1)
        self.assertTrue(reviewers <= {"c", "d"})

    def test_merged_prs_untouched(self):
        self.pr.status = PullRequest.Status.MERGED
        self.pr.save()

        result = self.service.bulk_deactivate_team_members("backend", ["b"])

        self.assertEqual(result['reassigned_count'], 0)
        self.assertEqual(list(self.pr.assignments.values_list('user_id', flat=True)), ["b"])

    def test_whole_team_keeps_assignment_without_candidates(self):
        """Тест что при деактивации всей команды заменить некем и назначение остается"""
        result = self.service.bulk_deactivate_team_members("backend")

        self.assertEqual(result['deactivated_user_ids'], ["a", "b", "c", "d"])
        self.assertEqual(result['reassigned_count'], 0)
        self.assertFalse(User.objects.filter(team__name="backend", is_active=True).exists())
        self.assertEqual(list(self.pr.assignments.values_list('user_id', flat=True)), ["b"])

    def test_never_assigns_author_or_deactivated(self):
        ReviewerAssignment.objects.create(pull_request=self.pr, user_id="c")

        result = self.service.bulk_deactivate_team_members("backend", ["b", "c"])

        # a - автор, b и c деактивируются: единственный кандидат d заменяет одного из них
        self.assertEqual(result['reassigned_count'], 1)
        reviewers = set(self.pr.assignments.values_list('user_id', flat=True))
        self.assertIn("d", reviewers)
        self.assertNotIn("a", reviewers)
        self.assertEqual(len(reviewers), 2)

    def test_unknown_user_ids_ignored(self):
        result = self.service.bulk_deactivate_team_members("backend", ["nobody"])

        self.assertEqual(result['deactivated_user_ids'], [])
        self.assertEqual(result['reassigned_count'], 0)

    def test_team_not_found(self):
        with self.assertRaises(NotFound):
            self.service.bulk_deactivate_team_members("nonexistent")

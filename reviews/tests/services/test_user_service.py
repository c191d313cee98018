from datetime import timedelta

from django.test import TestCase
from django.utils import timezone

from reviews.exceptions import NotFound
from reviews.models import PullRequest, Team, User
from reviews.services import UserService


class UserServiceTest(TestCase):
    def setUp(self):
        self.service = UserService()
        self.team = Team.objects.create(name="backend")

        self.user1 = User.objects.create(id="u1", username="Alice", is_active=True, team=self.team)
        self.user2 = User.objects.create(id="u2", username="Bob", is_active=True, team=self.team)

        # Создаем PR где user2 - ревьювер
        self.pr = PullRequest.objects.create(
            id="pr-1",
            name="Test PR",
            author=self.user1,
            created_at=timezone.now() - timedelta(hours=1),
        )
        self.pr.reviewers.add(self.user2)

    def test_set_user_active_status_success(self):
        """Тест успешного изменения активности пользователя"""
        user = self.service.set_user_active_status("u1", False)

        self.assertEqual(user.id, "u1")
        self.assertFalse(user.is_active)
        self.assertEqual(user.team.name, "backend")

        # Проверяем что данные сохранились в БД
        user_from_db = User.objects.get(id="u1")
        self.assertFalse(user_from_db.is_active)

    def test_set_user_active_status_keeps_assignments(self):
        """Тест что деактивация не снимает уже назначенные ревью"""
        self.service.set_user_active_status("u2", False)

        self.assertIn(self.user2, self.pr.reviewers.all())

    def test_set_user_active_status_not_found(self):
        """Тест изменения активности несуществующего пользователя"""
        with self.assertRaises(NotFound) as context:
            self.service.set_user_active_status("nonexistent", True)

        self.assertEqual(context.exception.code, 'NOT_FOUND')

    def test_get_user_review_assignments_success(self):
        """Тест успешного получения PR пользователя как ревьювера"""
        assigned_prs = self.service.get_user_review_assignments("u2")

        self.assertEqual(len(assigned_prs), 1)
        self.assertEqual(assigned_prs[0].id, "pr-1")
        self.assertEqual(assigned_prs[0].author_id, "u1")

    def test_get_user_review_assignments_empty(self):
        """Тест получения PR когда пользователь не ревьювер"""
        assigned_prs = self.service.get_user_review_assignments("u1")

        self.assertEqual(assigned_prs, [])

    def test_get_user_review_assignments_unknown_user(self):
        """Тест что для неизвестного пользователя возвращается пустой список, а не ошибка"""
        self.assertEqual(self.service.get_user_review_assignments("nonexistent"), [])

    def test_get_user_review_assignments_multiple_prs(self):
        """Тест получения нескольких PR пользователя: новые первыми"""
        pr2 = PullRequest.objects.create(
            id="pr-2",
            name="Another PR",
            author=self.user1
        )
        pr2.reviewers.add(self.user2)

        assigned_prs = self.service.get_user_review_assignments("u2")

        self.assertEqual([pr.id for pr in assigned_prs], ["pr-2", "pr-1"])

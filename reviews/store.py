"""
Хранилище команд, пользователей, PR и назначений ревьюверов

ReviewStore описывает контракт, DjangoReviewStore реализует его поверх Django ORM.
Сервисы работают только через этот слой и не трогают модели напрямую.
"""

import abc
import logging
import time

from django.db import DEFAULT_DB_ALIAS, DatabaseError, IntegrityError, connections, models, transaction

from .exceptions import DeadlineExceeded, InternalError, NotFound, PRExists, TeamExists
from .models import PullRequest, ReviewerAssignment, Team, User

logger = logging.getLogger(__name__)


def check_deadline(deadline):
    if deadline is not None and time.monotonic() >= deadline:
        raise DeadlineExceeded()


class ReviewStore(abc.ABC):

    @abc.abstractmethod
    def run_in_transaction(self, fn, deadline=None):
        """Выполняет fn() атомарно: либо все изменения фиксируются, либо ни одного"""

    # Команды
    @abc.abstractmethod
    def team_exists(self, name): ...

    @abc.abstractmethod
    def insert_team(self, name): ...

    @abc.abstractmethod
    def get_team(self, name): ...

    @abc.abstractmethod
    def list_team_members(self, team_name): ...

    # Пользователи
    @abc.abstractmethod
    def upsert_user(self, user_id, username, team_name, is_active): ...

    @abc.abstractmethod
    def get_user(self, user_id): ...

    @abc.abstractmethod
    def set_user_active(self, user_id, is_active): ...

    @abc.abstractmethod
    def set_users_active(self, user_ids, is_active): ...

    @abc.abstractmethod
    def list_active_teammates(self, team_name, exclude_ids=()): ...

    @abc.abstractmethod
    def list_team_member_ids(self, team_name, user_ids=None): ...

    # Pull Request'ы
    @abc.abstractmethod
    def pr_exists(self, pr_id): ...

    @abc.abstractmethod
    def insert_pr(self, pr_id, name, author_id, created_at): ...

    @abc.abstractmethod
    def get_pr(self, pr_id, for_update=False): ...

    @abc.abstractmethod
    def update_pr_status(self, pr_id, status, merged_at): ...

    @abc.abstractmethod
    def list_open_prs_reviewed_by(self, user_ids): ...

    # Назначения ревьюверов
    @abc.abstractmethod
    def insert_reviewer_assignment(self, pr_id, user_id): ...

    @abc.abstractmethod
    def delete_reviewer_assignment(self, pr_id, user_id): ...

    @abc.abstractmethod
    def list_reviewers(self, pr_id): ...

    @abc.abstractmethod
    def is_assigned_reviewer(self, pr_id, user_id): ...

    @abc.abstractmethod
    def list_reviewed_prs(self, user_id): ...

    # Статистика
    @abc.abstractmethod
    def user_review_stats(self): ...

    @abc.abstractmethod
    def pr_reviewer_stats(self): ...


class DjangoReviewStore(ReviewStore):

    def __init__(self, using=DEFAULT_DB_ALIAS):
        self.using = using

    def _atomic(self):
        return transaction.atomic(using=self.using)

    def run_in_transaction(self, fn, deadline=None):
        """
        Выполняет fn() в transaction.atomic

        Дедлайн проверяется до начала и перед коммитом; просроченный дедлайн
        откатывает всю транзакцию. На PostgreSQL оставшееся время также
        ограничивает ожидание блокировок и каждый запрос. Ошибки БД превращаются
        в InternalError, а после истечения дедлайна - в DeadlineExceeded.
        """
        check_deadline(deadline)
        try:
            with self._atomic():
                self._limit_statement_time(deadline)
                result = fn()
                check_deadline(deadline)
                return result
        except DatabaseError as exc:
            if deadline is not None and time.monotonic() >= deadline:
                raise DeadlineExceeded() from exc
            logger.exception("Store transaction failed")
            raise InternalError() from exc

    def _limit_statement_time(self, deadline):
        connection = connections[self.using]
        if deadline is None or connection.vendor != 'postgresql':
            return

        remaining_ms = str(max(1, int((deadline - time.monotonic()) * 1000)))
        with connection.cursor() as cursor:
            # set_config(..., true) действует до конца текущей транзакции
            cursor.execute(
                "SELECT set_config('lock_timeout', %s, true), set_config('statement_timeout', %s, true)",
                [remaining_ms, remaining_ms],
            )

    def team_exists(self, name):
        return Team.objects.using(self.using).filter(name=name).exists()

    def insert_team(self, name):
        try:
            # Savepoint: после IntegrityError внешняя транзакция остается рабочей
            with self._atomic():
                return Team.objects.using(self.using).create(name=name)
        except IntegrityError:
            raise TeamExists()

    def get_team(self, name):
        try:
            return Team.objects.using(self.using).get(name=name)
        except Team.DoesNotExist:
            raise NotFound(f"Team '{name}' not found")

    def list_team_members(self, team_name):
        return list(
            User.objects.using(self.using)
            .filter(team__name=team_name)
            .order_by('username', 'id')
        )

    def upsert_user(self, user_id, username, team_name, is_active):
        team = self.get_team(team_name)
        user, _ = User.objects.using(self.using).update_or_create(
            id=user_id,
            defaults={
                'username': username,
                'team': team,
                'is_active': is_active,
            },
        )
        return user

    def get_user(self, user_id):
        try:
            return User.objects.using(self.using).select_related('team').get(id=user_id)
        except User.DoesNotExist:
            raise NotFound(f"User '{user_id}' not found")

    def set_user_active(self, user_id, is_active):
        updated = User.objects.using(self.using).filter(id=user_id).update(is_active=is_active)
        if not updated:
            raise NotFound(f"User '{user_id}' not found")
        return self.get_user(user_id)

    def set_users_active(self, user_ids, is_active):
        return User.objects.using(self.using).filter(id__in=list(user_ids)).update(is_active=is_active)

    def list_active_teammates(self, team_name, exclude_ids=()):
        return list(
            User.objects.using(self.using)
            .filter(team__name=team_name, is_active=True)
            .exclude(id__in=list(exclude_ids))
            .order_by('id')
            .values_list('id', flat=True)
        )

    def list_team_member_ids(self, team_name, user_ids=None):
        members = User.objects.using(self.using).filter(team__name=team_name)
        if user_ids is not None:
            members = members.filter(id__in=list(user_ids))
        return list(members.order_by('id').values_list('id', flat=True))

    def pr_exists(self, pr_id):
        return PullRequest.objects.using(self.using).filter(id=pr_id).exists()

    def insert_pr(self, pr_id, name, author_id, created_at):
        try:
            with self._atomic():
                return PullRequest.objects.using(self.using).create(
                    id=pr_id,
                    name=name,
                    author_id=author_id,
                    status=PullRequest.Status.OPEN,
                    created_at=created_at,
                )
        except IntegrityError:
            raise PRExists()

    def get_pr(self, pr_id, for_update=False):
        queryset = PullRequest.objects.using(self.using)
        if for_update:
            queryset = queryset.select_for_update()
        try:
            return queryset.get(id=pr_id)
        except PullRequest.DoesNotExist:
            raise NotFound(f"PR '{pr_id}' not found")

    def update_pr_status(self, pr_id, status, merged_at):
        updated = PullRequest.objects.using(self.using).filter(id=pr_id).update(
            status=status,
            merged_at=merged_at,
        )
        if not updated:
            raise NotFound(f"PR '{pr_id}' not found")

    def list_open_prs_reviewed_by(self, user_ids):
        return list(
            PullRequest.objects.using(self.using)
            .filter(status=PullRequest.Status.OPEN, assignments__user_id__in=list(user_ids))
            .select_related('author__team')
            .distinct()
            .order_by('created_at', 'id')
        )

    def insert_reviewer_assignment(self, pr_id, user_id):
        return ReviewerAssignment.objects.using(self.using).create(
            pull_request_id=pr_id,
            user_id=user_id,
        )

    def delete_reviewer_assignment(self, pr_id, user_id):
        deleted, _ = ReviewerAssignment.objects.using(self.using).filter(
            pull_request_id=pr_id,
            user_id=user_id,
        ).delete()
        return deleted > 0

    def list_reviewers(self, pr_id):
        return list(
            ReviewerAssignment.objects.using(self.using)
            .filter(pull_request_id=pr_id)
            .order_by('user_id')
            .values_list('user_id', flat=True)
        )

    def is_assigned_reviewer(self, pr_id, user_id):
        return ReviewerAssignment.objects.using(self.using).filter(
            pull_request_id=pr_id,
            user_id=user_id,
        ).exists()

    def list_reviewed_prs(self, user_id):
        return list(
            PullRequest.objects.using(self.using)
            .filter(assignments__user_id=user_id)
            .order_by('-created_at', '-id')
        )

    def user_review_stats(self):
        return list(
            User.objects.using(self.using)
            .filter(review_assignments__isnull=False)
            .annotate(
                prs_reviewed=models.Count('review_assignments'),
                open_prs_reviewed=models.Count(
                    'review_assignments',
                    filter=models.Q(review_assignments__pull_request__status=PullRequest.Status.OPEN),
                ),
                merged_prs_reviewed=models.Count(
                    'review_assignments',
                    filter=models.Q(review_assignments__pull_request__status=PullRequest.Status.MERGED),
                ),
            )
            .values('id', 'username', 'prs_reviewed', 'open_prs_reviewed', 'merged_prs_reviewed')
            .order_by('-prs_reviewed', 'id')
        )

    def pr_reviewer_stats(self):
        return list(
            PullRequest.objects.using(self.using)
            .annotate(
                reviewers_count=models.Count('assignments'),
                team_name=models.F('author__team__name'),
            )
            .values('id', 'name', 'status', 'team_name', 'reviewers_count', 'created_at', 'merged_at')
            .order_by('-created_at', 'id')
        )

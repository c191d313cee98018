import logging
import random

from django.conf import settings
from django.utils import timezone

from .exceptions import NoCandidate, NotAssigned, PRExists, PRMerged, TeamExists
from .models import PullRequest
from .reviewer_selection import pick_replacement, select_reviewers
from .store import DjangoReviewStore

logger = logging.getLogger(__name__)


class BaseService:

    def __init__(self, store=None, rng=None):
        self.store = store or DjangoReviewStore()
        self.rng = rng or random.Random()


class TeamService(BaseService):
    """
    Сервис для управления командами и пользователями
    """

    def create_team_with_members(self, team_name: str, members_data: list, deadline=None):
        """
        Создает команду с пользователями

        Args:
            team_name: Название команды
            members_data: Список данных пользователей (user_id, username, is_active)

        Returns:
            Team: Созданная команда с member_list, отсортированным по username

        Raises:
            TeamExists: Если команда уже существует
        """
        def create():
            if self.store.team_exists(team_name):
                raise TeamExists()

            team = self.store.insert_team(team_name)

            # Создаем/обновляем пользователей, они переезжают в новую команду
            for member_data in members_data:
                self.store.upsert_user(
                    member_data['user_id'],
                    member_data['username'],
                    team_name,
                    member_data['is_active'],
                )

            team.member_list = self.store.list_team_members(team_name)
            return team

        team = self.store.run_in_transaction(create, deadline=deadline)
        logger.info("Team '%s' created with %d members", team_name, len(team.member_list))
        return team

    def get_team_with_members(self, team_name: str, deadline=None):
        """
        Получает команду с ее участниками

        Raises:
            NotFound: Если команда не найдена
        """
        def load():
            team = self.store.get_team(team_name)
            team.member_list = self.store.list_team_members(team_name)
            return team

        return self.store.run_in_transaction(load, deadline=deadline)

    def bulk_deactivate_team_members(self, team_name: str, user_ids: list = None, deadline=None) -> dict:
        """
        Массовая деактивация пользователей команды с переназначением открытых PR

        Args:
            team_name: Название команды
            user_ids: Кого деактивировать; None - всю команду

        Returns:
            dict: team_name, deactivated_user_ids, reassigned_count

        Raises:
            NotFound: Если команда не найдена
        """
        def deactivate():
            self.store.get_team(team_name)

            member_ids = self.store.list_team_member_ids(team_name, user_ids)
            if not member_ids:
                return member_ids, 0

            reassigned = self._safely_reassign_reviewers(set(member_ids))
            self.store.set_users_active(member_ids, False)
            return member_ids, reassigned

        member_ids, reassigned = self.store.run_in_transaction(deactivate, deadline=deadline)
        logger.info(
            "Team '%s': deactivated %d users, reassigned %d reviews",
            team_name, len(member_ids), reassigned,
        )
        return {
            'team_name': team_name,
            'deactivated_user_ids': member_ids,
            'reassigned_count': reassigned,
        }

    def _safely_reassign_reviewers(self, deactivating: set) -> int:
        """
        Заменяет деактивируемых ревьюверов в открытых PR

        Если заменить некем, назначение остается как есть.
        """
        reassigned = 0
        for pr in self.store.list_open_prs_reviewed_by(deactivating):
            # Блокируем PR так же, как при ручном переназначении
            self.store.get_pr(pr.id, for_update=True)
            current_reviewers = self.store.list_reviewers(pr.id)
            leaving = [user_id for user_id in current_reviewers if user_id in deactivating]
            if not leaving:
                continue

            available_candidates = self.store.list_active_teammates(
                pr.author.team.name,
                exclude_ids={pr.author_id} | set(current_reviewers) | deactivating,
            )

            for old_reviewer_id in leaving:
                new_reviewer_id = pick_replacement(available_candidates, self.rng)
                if new_reviewer_id is None:
                    break

                self.store.delete_reviewer_assignment(pr.id, old_reviewer_id)
                self.store.insert_reviewer_assignment(pr.id, new_reviewer_id)
                available_candidates.remove(new_reviewer_id)
                reassigned += 1

        return reassigned


class UserService(BaseService):
    """
    Сервис для управления пользователями
    """

    def set_user_active_status(self, user_id: str, is_active: bool, deadline=None):
        """
        Устанавливает флаг активности пользователя

        Уже назначенные ревью не меняются, флаг влияет только на будущий выбор.

        Raises:
            NotFound: Если пользователь не найден
        """
        user = self.store.run_in_transaction(
            lambda: self.store.set_user_active(user_id, is_active),
            deadline=deadline,
        )
        logger.info("User '%s' is_active=%s", user_id, is_active)
        return user

    def get_user_review_assignments(self, user_id: str, deadline=None) -> list:
        """
        Получает PR'ы, где пользователь назначен ревьювером, новые первыми

        Для неизвестного пользователя возвращает пустой список.
        """
        return self.store.run_in_transaction(
            lambda: self.store.list_reviewed_prs(user_id),
            deadline=deadline,
        )


class PullRequestService(BaseService):
    """
    Сервис для управления Pull Request'ами
    """

    def __init__(self, store=None, rng=None, reviewers_per_pr=None):
        super().__init__(store=store, rng=rng)
        if reviewers_per_pr is None:
            reviewers_per_pr = settings.REVIEWERS_PER_PR
        self.reviewers_per_pr = reviewers_per_pr

    def _load_pull_request(self, pr_id: str) -> PullRequest:
        pr = self.store.get_pr(pr_id)
        pr.assigned_reviewers = self.store.list_reviewers(pr_id)
        return pr

    def get_pull_request(self, pr_id: str, deadline=None) -> PullRequest:
        """
        Raises:
            NotFound: Если PR не найден
        """
        return self.store.run_in_transaction(lambda: self._load_pull_request(pr_id), deadline=deadline)

    def create_pull_request(self, pr_id: str, pr_name: str, author_id: str, deadline=None) -> PullRequest:
        """
        Создает PR и автоматически назначает до reviewers_per_pr ревьюверов из команды автора

        Args:
            pr_id: ID PR
            pr_name: Название PR
            author_id: ID автора

        Returns:
            PullRequest: Созданный PR с assigned_reviewers

        Raises:
            PRExists: Если PR уже существует
            NotFound: Если автор не найден
        """
        def create():
            if self.store.pr_exists(pr_id):
                raise PRExists()

            author = self.store.get_user(author_id)

            candidates = self.store.list_active_teammates(author.team.name, exclude_ids={author.id})
            reviewers = select_reviewers(candidates, self.reviewers_per_pr, self.rng)

            self.store.insert_pr(pr_id, pr_name, author.id, timezone.now())
            for reviewer_id in reviewers:
                self.store.insert_reviewer_assignment(pr_id, reviewer_id)

            return self._load_pull_request(pr_id)

        pr = self.store.run_in_transaction(create, deadline=deadline)
        logger.info("PR '%s' created by '%s', reviewers: %s", pr_id, author_id, pr.assigned_reviewers)
        return pr

    def merge_pull_request(self, pr_id: str, deadline=None) -> PullRequest:
        """
        Помечает PR как MERGED

        Повторный merge возвращает текущее состояние без изменений.

        Raises:
            NotFound: Если PR не найден
        """
        def merge():
            pr = self.store.get_pr(pr_id, for_update=True)
            if not pr.is_merged:
                self.store.update_pr_status(pr_id, PullRequest.Status.MERGED, timezone.now())
                logger.info("PR '%s' merged", pr_id)
            return self._load_pull_request(pr_id)

        return self.store.run_in_transaction(merge, deadline=deadline)

    def reassign_reviewer(self, pr_id: str, old_user_id: str, deadline=None) -> tuple:
        """
        Переназначает конкретного ревьювера на другого из его команды

        Строка PR блокируется до конца транзакции, поэтому два параллельных
        переназначения одного PR не могут выбрать одного и того же кандидата.

        Args:
            pr_id: ID PR
            old_user_id: ID старого ревьювера

        Returns:
            tuple: (PullRequest, ID нового ревьювера)

        Raises:
            NotFound: Если PR не найден
            PRMerged: Если PR уже смержен
            NotAssigned: Если old_user_id не ревьювер этого PR
            NoCandidate: Если в команде некого назначить
        """
        def reassign():
            pr = self.store.get_pr(pr_id, for_update=True)

            # Проверяем доменные правила
            if pr.is_merged:
                raise PRMerged()

            if not self.store.is_assigned_reviewer(pr_id, old_user_id):
                raise NotAssigned()

            old_reviewer = self.store.get_user(old_user_id)
            current_reviewer_ids = self.store.list_reviewers(pr_id)

            # Кандидаты: активные из команды старого ревьювера, кроме автора и всех текущих ревьюверов
            available_candidates = self.store.list_active_teammates(
                old_reviewer.team.name,
                exclude_ids={pr.author_id, *current_reviewer_ids},
            )

            new_reviewer_id = pick_replacement(available_candidates, self.rng)
            if new_reviewer_id is None:
                raise NoCandidate()

            self.store.delete_reviewer_assignment(pr_id, old_user_id)
            self.store.insert_reviewer_assignment(pr_id, new_reviewer_id)

            return self._load_pull_request(pr_id), new_reviewer_id

        pr, new_reviewer_id = self.store.run_in_transaction(reassign, deadline=deadline)
        logger.info("PR '%s': reviewer '%s' replaced by '%s'", pr_id, old_user_id, new_reviewer_id)
        return pr, new_reviewer_id


class StatsService(BaseService):
    """
    Сервис для сбора статистики
    """

    def get_review_stats(self, deadline=None) -> dict:
        """
        Returns:
            dict: Статистика по пользователям и PR
        """
        def collect():
            return {
                'user_review_stats': self.store.user_review_stats(),
                'pr_reviewer_stats': self.store.pr_reviewer_stats(),
            }

        return self.store.run_in_transaction(collect, deadline=deadline)

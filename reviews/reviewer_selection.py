"""
Выбор ревьюверов

Чистые функции над ID кандидатов: без обращения к БД,
источник случайности передается снаружи (в тестах - random.Random с seed).
"""

import random
from typing import Iterable, List, Optional


def _unique(candidates: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(candidates))


def select_reviewers(candidates: Iterable[str], desired_count: int,
                     rng: Optional[random.Random] = None) -> List[str]:
    """
    Выбирает до desired_count ревьюверов из кандидатов

    Args:
        candidates: ID пользователей, которых можно назначить
        desired_count: Сколько ревьюверов нужно
        rng: Источник случайности

    Returns:
        list: Все кандидаты, если их не больше desired_count,
        иначе равномерно случайная выборка без повторов
    """
    if desired_count < 0:
        raise ValueError(f"desired_count must be non-negative, got {desired_count}")

    pool = _unique(candidates)
    if len(pool) <= desired_count:
        return pool

    rng = rng or random.Random()
    return rng.sample(pool, desired_count)


def pick_replacement(candidates: Iterable[str],
                     rng: Optional[random.Random] = None) -> Optional[str]:
    """Случайный кандидат на замену или None, если выбирать не из кого"""
    pool = _unique(candidates)
    if not pool:
        return None

    rng = rng or random.Random()
    return rng.choice(pool)

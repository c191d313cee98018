import random
from collections import Counter
from itertools import combinations

from django.test import SimpleTestCase

from reviews.reviewer_selection import pick_replacement, select_reviewers


class SelectReviewersTest(SimpleTestCase):

    def test_returns_all_when_not_enough_candidates(self):
        """Тест когда кандидатов не больше, чем нужно"""
        self.assertEqual(select_reviewers(["u1", "u2"], 2), ["u1", "u2"])
        self.assertEqual(select_reviewers(["u1"], 2), ["u1"])

    def test_empty_candidates(self):
        """Тест пустого списка кандидатов"""
        self.assertEqual(select_reviewers([], 2), [])

    def test_zero_count(self):
        self.assertEqual(select_reviewers(["u1", "u2"], 0), [])

    def test_negative_count_rejected(self):
        with self.assertRaises(ValueError):
            select_reviewers(["u1"], -1)

    def test_duplicates_collapsed(self):
        """Тест что один кандидат не выбирается дважды"""
        reviewers = select_reviewers(["u1", "u1", "u2", "u2"], 2, random.Random(1))
        self.assertCountEqual(reviewers, ["u1", "u2"])

    def test_selects_exact_count_of_distinct_candidates(self):
        candidates = ["u1", "u2", "u3", "u4", "u5"]
        rng = random.Random(42)

        for _ in range(100):
            reviewers = select_reviewers(candidates, 2, rng)
            self.assertEqual(len(reviewers), 2)
            self.assertEqual(len(set(reviewers)), 2)
            self.assertTrue(set(reviewers) <= set(candidates))

    def test_same_seed_same_selection(self):
        candidates = ["u1", "u2", "u3", "u4", "u5"]
        self.assertEqual(
            select_reviewers(candidates, 2, random.Random(7)),
            select_reviewers(candidates, 2, random.Random(7)),
        )

    def test_selection_is_uniform(self):
        """Тест равномерности: каждая пара из 4 кандидатов выпадает примерно в 1/6 случаев"""
        candidates = ["u1", "u2", "u3", "u4"]
        rng = random.Random(2025)
        trials = 6000

        pairs = Counter(
            frozenset(select_reviewers(candidates, 2, rng)) for _ in range(trials)
        )

        self.assertEqual(len(pairs), 6)
        for pair in combinations(candidates, 2):
            self.assertAlmostEqual(pairs[frozenset(pair)], trials / 6, delta=150)

    def test_does_not_mutate_candidates(self):
        candidates = ["u1", "u2", "u3"]
        select_reviewers(candidates, 2, random.Random(3))
        self.assertEqual(candidates, ["u1", "u2", "u3"])


class PickReplacementTest(SimpleTestCase):

    def test_no_candidates(self):
        self.assertIsNone(pick_replacement([]))

    def test_single_candidate(self):
        self.assertEqual(pick_replacement(["u1"], random.Random(0)), "u1")

    def test_pick_is_uniform(self):
        candidates = ["u1", "u2", "u3"]
        rng = random.Random(99)
        trials = 3000

        picks = Counter(pick_replacement(candidates, rng) for _ in range(trials))

        self.assertEqual(set(picks), set(candidates))
        for candidate in candidates:
            self.assertAlmostEqual(picks[candidate], trials / 3, delta=150)

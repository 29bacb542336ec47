"""
Tests for microprompts.pool.PromptPool.

Covers:
  - initialization from a catalog (shuffled, fully unused)
  - mark_used idempotence and unknown prompts
  - mark_used_if_equivalent: substring, token subset, any-token overlap
  - the unused/used partition after arbitrary mutation sequences
  - reset and reshuffle
"""

import random

import pytest

from microprompts.catalog import DEFAULT_CATALOG
from microprompts.exceptions import CatalogError
from microprompts.pool import PromptPool


def assert_partition(pool):
    unused = set(pool.unused)
    assert len(unused) == len(pool.unused), "unused must not repeat prompts"
    assert unused.isdisjoint(pool.used)
    assert unused | pool.used == set(pool.catalog)


class TestInitialization:
    def test_starts_fully_unused(self, rng):
        pool = PromptPool(DEFAULT_CATALOG, rng=rng)
        assert set(pool.unused) == set(DEFAULT_CATALOG)
        assert pool.used == frozenset()
        assert len(pool) == 30

    def test_order_is_shuffled_with_seed(self):
        first = PromptPool(DEFAULT_CATALOG, rng=random.Random(7))
        second = PromptPool(DEFAULT_CATALOG, rng=random.Random(7))
        assert first.unused == second.unused
        assert first.unused != DEFAULT_CATALOG

    def test_catalog_is_preserved_in_order(self, rng):
        pool = PromptPool(["b", "a"], rng=rng)
        assert pool.catalog == ("b", "a")

    def test_duplicates_are_dropped(self, rng):
        pool = PromptPool(["CV summary", "CV summary", "Critical thinking"], rng=rng)
        assert pool.catalog == ("CV summary", "Critical thinking")
        assert len(pool) == 2

    def test_empty_catalog_rejected(self, rng):
        with pytest.raises(CatalogError):
            PromptPool([], rng=rng)


class TestMarkUsed:
    def test_moves_prompt(self, rng):
        pool = PromptPool(DEFAULT_CATALOG, rng=rng)
        assert pool.mark_used("CV summary") is True
        assert "CV summary" not in pool
        assert "CV summary" in pool.used
        assert_partition(pool)

    def test_is_idempotent(self, rng):
        pool = PromptPool(DEFAULT_CATALOG, rng=rng)
        pool.mark_used("CV summary")
        assert pool.mark_used("CV summary") is False
        assert len(pool.used) == 1

    def test_unknown_prompt_is_ignored(self, rng):
        pool = PromptPool(DEFAULT_CATALOG, rng=rng)
        assert pool.mark_used("Favourite colour") is False
        assert pool.used == frozenset()
        assert_partition(pool)

    def test_empty_prompt_is_ignored(self, rng):
        pool = PromptPool(DEFAULT_CATALOG, rng=rng)
        assert pool.mark_used("") is False


class TestMarkUsedIfEquivalent:
    def test_substring_match(self, rng):
        pool = PromptPool(DEFAULT_CATALOG, rng=rng)
        matched = pool.mark_used_if_equivalent("Tell me about your machine learning work details")
        assert "Machine learning work" in matched
        assert "Machine learning work" in pool.used
        assert "Machine learning work" not in pool

    def test_token_subset_match(self, rng):
        pool = PromptPool(["Stellar observations"], rng=rng)
        assert pool.mark_used_if_equivalent("observations of stellar spectra") == [
            "Stellar observations"
        ]

    def test_single_shared_token_is_enough(self, rng):
        pool = PromptPool(DEFAULT_CATALOG, rng=rng)
        matched = pool.mark_used_if_equivalent("What are his skills?")
        assert set(matched) == {
            "Technical skills",
            "Collaboration skills",
            "Data analysis skills",
            "Communication skills",
        }

    def test_no_overlap_marks_nothing(self, rng):
        pool = PromptPool(["Stellar observations", "BHU UET rank"], rng=rng)
        assert pool.mark_used_if_equivalent("quantum gravity?") == []
        assert len(pool) == 2

    def test_empty_text_marks_nothing(self, rng):
        pool = PromptPool(DEFAULT_CATALOG, rng=rng)
        assert pool.mark_used_if_equivalent("") == []

    def test_preserves_relative_order_of_remaining(self, rng):
        pool = PromptPool(DEFAULT_CATALOG, rng=rng)
        before = [p for p in pool.unused if "skills" not in p.lower()]
        pool.mark_used_if_equivalent("skills")
        assert list(pool.unused) == before


class TestPartitionInvariant:
    def test_holds_across_random_sequences(self):
        rng = random.Random(99)
        pool = PromptPool(DEFAULT_CATALOG, rng=rng)
        texts = [
            "research",
            "what did he do at isro",
            "python",
            "rank",
            "nothing relevant here zzz",
            "BRAHMa tool",
        ]
        for _ in range(40):
            if rng.random() < 0.5:
                pool.mark_used(rng.choice(DEFAULT_CATALOG))
            else:
                pool.mark_used_if_equivalent(rng.choice(texts))
            assert_partition(pool)


class TestResetAndReshuffle:
    def test_reset_restores_everything(self, rng):
        pool = PromptPool(DEFAULT_CATALOG, rng=rng)
        pool.mark_used_if_equivalent("research skills")
        assert pool.used

        pool.reset()
        assert set(pool.unused) == set(DEFAULT_CATALOG)
        assert pool.used == frozenset()

    def test_reshuffle_keeps_membership(self, rng):
        pool = PromptPool(DEFAULT_CATALOG, rng=rng)
        pool.mark_used("CV summary")
        before = pool.unused
        pool.reshuffle()
        assert set(pool.unused) == set(before)
        assert pool.unused != before
        assert pool.used == frozenset({"CV summary"})

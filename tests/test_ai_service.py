import random
from unittest.mock import AsyncMock

import pytest

from core.ai_service import (
    STATS_DAYS_LIMIT, AIChallengeGenerator, ChallengeTemplateProvider, GenerationStats,
    generate_title, personalize_challenge, time_of_day_phrase
)
from core.database import StorageReadError, StorageWriteError
from core.models import Difficulty, Preferences
from services.storage_service import HISTORY_KEY, PREFERENCES_KEY, daily_challenges_key
from tests.conftest import ScriptedRandom
from tests.test_storage_service import make_challenge


@pytest.fixture
def generator(storage, clock):
    return AIChallengeGenerator(storage, rng=random.Random(7), clock=clock)


async def use_preferences(storage, **kwargs):
    await storage.save_user_preferences(Preferences(**kwargs))


class TestPersonalization:

    @pytest.mark.parametrize("hour, phrase", [
        (0, "this morning"),
        (11, "this morning"),
        (12, "this afternoon"),
        (16, "this afternoon"),
        (17, "this evening"),
        (23, "this evening"),
    ])
    def test_time_of_day_phrase(self, hour, phrase):
        assert time_of_day_phrase(hour) == phrase

    def test_today_is_replaced(self):
        text = personalize_challenge("Drink 8 glasses of water today", Difficulty.MEDIUM, 18)
        assert text == "Drink 8 glasses of water this evening"

    def test_easy_shortens_durations(self):
        assert personalize_challenge(
            "Practice a musical instrument for 15 minutes", Difficulty.EASY, 9
        ) == "Practice a musical instrument for 5 minutes"
        assert personalize_challenge(
            "Do 20 push-ups or 10 minutes of stretching", Difficulty.EASY, 9
        ) == "Do 10 push-ups or 10 minutes of stretching"

    def test_hard_lengthens_durations(self):
        assert personalize_challenge(
            "Practice deep breathing for 5 minutes", Difficulty.HARD, 9
        ) == "Practice deep breathing for 15 minutes"

    def test_hard_replacement_is_a_literal_match(self):
        assert personalize_challenge(
            "Research a topic you're curious about for 15 minutes", Difficulty.HARD, 9
        ) == "Research a topic you're curious about for 115 minutes"

    def test_medium_only_adjusts_time_of_day(self):
        text = "Listen actively to someone without interrupting for 5 minutes"
        assert personalize_challenge(text, Difficulty.MEDIUM, 9) == text

    def test_title_uses_emoji_and_first_four_words(self):
        assert generate_title("Take a 15-minute walk outside", "health") == "💪 Take a 15-minute walk..."
        assert generate_title("Try to solve a puzzle", "learning") == "🧠 Try to solve a..."
        assert generate_title("Call a friend", "social") == "✨ Call a friend..."


class TestTemplateProvider:

    def test_pick_follows_random_indexes(self):
        provider = ChallengeTemplateProvider()
        template = provider.pick("health", ScriptedRandom([1, 2]))
        assert template.category == "health"
        assert template.type == "mental"
        assert template.text == "Do something that makes you laugh today"

    def test_unknown_category(self):
        with pytest.raises(KeyError):
            ChallengeTemplateProvider().pick("finance", random.Random(1))


class TestCategorySelection:

    def test_distinct_categories_in_draw_order(self, storage, clock):
        generator = AIChallengeGenerator(storage, rng=ScriptedRandom([2, 0, 0]), clock=clock)
        assert generator.select_categories(["personal", "health", "learning"]) == [
            "learning", "personal", "health"
        ]

    def test_single_category_is_repeated(self, generator):
        assert generator.select_categories(["health"]) == ["health", "health", "health"]

    def test_two_categories_are_both_used(self, generator):
        for _ in range(20):
            selected = generator.select_categories(["health", "learning"])
            assert len(selected) == 3
            assert {"health", "learning"} == set(selected)

    def test_no_categories(self, generator):
        with pytest.raises(ValueError):
            generator.select_categories([])


class TestGeneration:

    async def test_uses_defaults_without_stored_preferences(self, generator):
        await generator.initialize()
        assert generator.user_preferences.difficulty == Difficulty.MEDIUM
        assert generator.user_preferences.categories == ["personal", "health", "learning"]

    async def test_falls_back_to_defaults_on_invalid_preferences(self, generator, store):
        store.data[PREFERENCES_KEY] = '{"difficulty": "extreme"}'
        await generator.initialize()
        assert generator.user_preferences == Preferences()

    async def test_falls_back_on_read_failure(self, generator, store):
        store.get = AsyncMock(side_effect=StorageReadError("disk gone"))
        await generator.initialize()
        assert generator.user_preferences == Preferences()
        assert generator.challenge_history == []

    async def test_batch_shape(self, generator, clock):
        await generator.initialize()
        challenges = generator.generate_daily_challenges()

        assert len(challenges) == 3
        assert len({c.category for c in challenges}) == 3
        for index, challenge in enumerate(challenges):
            assert challenge.id == f"challenge_{int(clock.now().timestamp() * 1000)}_{index}"
            assert challenge.difficulty == Difficulty.MEDIUM
            assert (challenge.estimated_time, challenge.effort_level, challenge.complexity) == (15, 2, 2)
            assert challenge.completed is False
            assert challenge.completed_at is None
            assert challenge.user_notes == ""
            assert challenge.ai_generated is True
            assert challenge.title.endswith("...")
            assert challenge.created_at == clock.now()

    @pytest.mark.parametrize("difficulty, minutes", [("easy", 5), ("hard", 30)])
    async def test_estimated_time_follows_difficulty(self, generator, storage, difficulty, minutes):
        await use_preferences(storage, difficulty=difficulty)
        await generator.initialize()

        for _ in range(10):
            for challenge in generator.generate_daily_challenges():
                assert challenge.estimated_time == minutes

    async def test_categories_come_from_preferences(self, generator, storage):
        await use_preferences(storage, categories=["learning", "personal"])
        await generator.initialize()

        for _ in range(10):
            for challenge in generator.generate_daily_challenges():
                assert challenge.category in ("learning", "personal")

    async def test_single_health_category(self, generator, storage):
        await use_preferences(storage, categories=["health"])
        await generator.initialize()

        challenges = await generator.get_todays_challenges()

        assert [c.category for c in challenges] == ["health", "health", "health"]

    async def test_same_seed_gives_same_batch(self, storage, clock):
        first = AIChallengeGenerator(storage, rng=random.Random(3), clock=clock)
        second = AIChallengeGenerator(storage, rng=random.Random(3), clock=clock)
        await first.initialize()
        await second.initialize()

        assert [c.description for c in first.generate_daily_challenges()] == \
            [c.description for c in second.generate_daily_challenges()]


class TestPersonalizationFactors:

    async def test_defaults_with_empty_history(self, generator):
        await generator.initialize()
        factors = generator.generate_daily_challenges()[0].personalization_factors

        assert factors.time_of_day == 9
        assert factors.day_of_week == 1  # Monday
        assert factors.user_difficulty == Difficulty.MEDIUM
        assert factors.recent_categories == {}
        assert factors.success_rate == 0.8

    async def test_history_signals(self, generator, storage):
        history = [make_challenge(n, category="learning") for n in range(5)]
        history += [make_challenge(n, category="health", completed=n % 2 == 0) for n in range(5, 15)]
        await storage.save_challenge_history(history)
        await generator.initialize()

        factors = generator.generate_daily_challenges()[0].personalization_factors

        assert factors.recent_categories == {"health": 10}
        assert factors.success_rate == pytest.approx(5 / 15)


class TestTodaysChallenges:

    async def test_same_day_is_idempotent(self, generator, storage):
        await generator.initialize()

        first = await generator.get_todays_challenges()
        history_after_first = await storage.load_challenge_history()
        second = await generator.get_todays_challenges()
        history_after_second = await storage.load_challenge_history()

        assert first == second
        assert len(history_after_first) == len(history_after_second) == 3
        assert generator.stats.batches_generated == 1
        assert generator.stats.cache_hits == 1

    async def test_cached_under_todays_key(self, generator, store, clock):
        challenges = await generator.get_todays_challenges()

        assert "dailyChallenges_Mon Jan 01 2024" in store.data
        assert daily_challenges_key(clock.now().date()) == "dailyChallenges_Mon Jan 01 2024"
        assert len(challenges) == 3

    async def test_new_day_generates_new_batch(self, generator, storage, clock):
        first = await generator.get_todays_challenges()
        clock.advance(days=1)
        second = await generator.get_todays_challenges()

        assert {c.id for c in first}.isdisjoint({c.id for c in second})
        assert len(await storage.load_challenge_history()) == 6
        assert len(generator.challenge_history) == 6

    async def test_initializes_lazily(self, generator):
        assert generator.is_initialized is False
        assert len(await generator.get_todays_challenges()) == 3
        assert generator.is_initialized is True

    async def test_read_failure_returns_empty(self, generator, store):
        await generator.initialize()
        store.get = AsyncMock(side_effect=StorageReadError("disk gone"))

        assert await generator.get_todays_challenges() == []
        assert generator.stats.failed_requests == 1

    async def test_corrupted_cache_returns_empty(self, generator, store, clock):
        await generator.initialize()
        store.data[daily_challenges_key(clock.now().date())] = "not json"

        assert await generator.get_todays_challenges() == []

    async def test_save_failure_still_returns_batch(self, generator, store):
        await generator.initialize()
        store.set = AsyncMock(side_effect=StorageWriteError("read-only"))

        challenges = await generator.get_todays_challenges()

        assert len(challenges) == 3
        assert HISTORY_KEY not in store.data

    async def test_corrupted_history_is_replaced_by_next_batch(self, generator, storage, store, clock):
        store.data[HISTORY_KEY] = "{not json"

        challenges = await generator.get_todays_challenges()

        history = await storage.load_challenge_history()
        assert [c.id for c in history] == [c.id for c in challenges]
        assert len(generator.challenge_history) == 3

        clock.advance(days=1)
        await generator.get_todays_challenges()
        assert len(await storage.load_challenge_history()) == 6

    async def test_history_stays_capped(self, generator, storage, clock):
        await storage.save_challenge_history([make_challenge(n) for n in range(99)])
        await generator.initialize()

        await generator.get_todays_challenges()

        history = await storage.load_challenge_history()
        assert len(history) == 100
        assert history[0].id == "challenge_2"
        assert len(generator.challenge_history) == 100


class TestGenerationStats:

    def test_counts_batches_per_day(self):
        stats = GenerationStats()
        stats.record_batch("Mon Jan 01 2024")
        stats.record_batch("Mon Jan 01 2024")
        assert stats.to_dict()['batches_by_day'] == {"Mon Jan 01 2024": 2}

    def test_keeps_only_recent_days(self):
        stats = GenerationStats()
        for day in range(STATS_DAYS_LIMIT + 5):
            stats.record_batch(f"day {day}")

        assert len(stats.batches_by_day) == STATS_DAYS_LIMIT
        assert "day 4" not in stats.batches_by_day
        assert "day 5" in stats.batches_by_day

    async def test_generator_stats_follow_clock(self, generator, clock):
        for _ in range(STATS_DAYS_LIMIT + 2):
            await generator.get_todays_challenges()
            clock.advance(days=1)

        assert len(generator.get_stats()['generator']['batches_by_day']) == STATS_DAYS_LIMIT


class TestToggle:

    async def test_toggle_completion(self, generator, storage, clock):
        challenges = await generator.get_todays_challenges()
        target = challenges[1].id

        toggled = await generator.toggle_challenge(target)
        assert toggled.completed is True
        assert toggled.completed_at == clock.now()

        stored = await storage.read_daily_challenges(clock.now().date())
        assert [c.completed for c in stored] == [False, True, False]
        history = await storage.load_challenge_history()
        assert [c.completed for c in history] == [False, True, False]
        assert generator.calculate_success_rate() == pytest.approx(1 / 3)

        toggled = await generator.toggle_challenge(target)
        assert toggled.completed is False
        assert toggled.completed_at is None

    async def test_unknown_challenge(self, generator):
        await generator.get_todays_challenges()
        assert await generator.toggle_challenge("challenge_missing") is None

    async def test_nothing_generated_yet(self, generator):
        assert await generator.toggle_challenge("challenge_1_0") is None

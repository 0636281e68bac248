#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Daily Challenges v1.0 - AI Challenge Generator
Генератор ежедневных заданий на основе шаблонов

"AI" здесь - выбор шаблонов с псевдослучайностью и легкой персонализацией
по времени суток, сложности и истории пользователя. Каждый календарный день
получает ровно один набор из CHALLENGES_PER_DAY заданий, который кэшируется
в хранилище под ключом этого дня.

Версия: 1.0.0
"""

import random
from collections import Counter
from datetime import datetime
from typing import TYPE_CHECKING, Dict, List, Optional, Any
from dataclasses import dataclass, field
import logging

from core.database import StorageError
from core.models import (
    Challenge, ChallengeCategory, Difficulty, PersonalizationFactors, Preferences
)
from utils.datetime_utils import Clock, day_key, day_of_week

if TYPE_CHECKING:
    from services.storage_service import StorageService

logger = logging.getLogger(__name__)

CHALLENGES_PER_DAY = 3
RECENT_HISTORY_WINDOW = 10
DEFAULT_SUCCESS_RATE = 0.8
STATS_DAYS_LIMIT = 30

# ===== DATA CLASSES =====

@dataclass(frozen=True)
class ChallengeTemplate:
    """Шаблон задания до персонализации"""
    category: str
    type: str
    text: str

@dataclass(frozen=True)
class TemplateGroup:
    """Группа шаблонов одного типа внутри категории"""
    type: str
    templates: List[str]

@dataclass(frozen=True)
class DifficultyModifier:
    """Оценки задания для уровня сложности"""
    time: int
    effort: int
    complexity: int

DIFFICULTY_MODIFIERS: Dict[Difficulty, DifficultyModifier] = {
    Difficulty.EASY: DifficultyModifier(time=5, effort=1, complexity=1),
    Difficulty.MEDIUM: DifficultyModifier(time=15, effort=2, complexity=2),
    Difficulty.HARD: DifficultyModifier(time=30, effort=3, complexity=3)
}

CATEGORY_EMOJIS = {
    ChallengeCategory.PERSONAL.value: "💭",
    ChallengeCategory.HEALTH.value: "💪",
    ChallengeCategory.LEARNING.value: "🧠"
}
DEFAULT_EMOJI = "✨"

@dataclass
class GenerationStats:
    """Статистика генератора"""
    batches_generated: int = 0
    challenges_generated: int = 0
    cache_hits: int = 0
    failed_requests: int = 0
    batches_by_day: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'batches_generated': self.batches_generated,
            'challenges_generated': self.challenges_generated,
            'cache_hits': self.cache_hits,
            'failed_requests': self.failed_requests,
            'batches_by_day': dict(self.batches_by_day)
        }

    def record_batch(self, day: str) -> None:
        """Учесть набор за день, храня не больше STATS_DAYS_LIMIT последних дней"""
        self.batches_by_day[day] = self.batches_by_day.pop(day, 0) + 1
        while len(self.batches_by_day) > STATS_DAYS_LIMIT:
            del self.batches_by_day[next(iter(self.batches_by_day))]

# ===== TEMPLATES =====

class ChallengeTemplateProvider:
    """Корпус шаблонов заданий по категориям"""

    def __init__(self):
        self.templates = self._load_templates()

    def _load_templates(self) -> Dict[str, List[TemplateGroup]]:
        """Загрузка шаблонов заданий"""
        return {
            ChallengeCategory.PERSONAL.value: [
                TemplateGroup('reflection', [
                    "Take 10 minutes to write about something you're grateful for today",
                    "Reflect on a recent challenge and what you learned from it",
                    "Write down three things you want to improve about yourself"
                ]),
                TemplateGroup('connection', [
                    "Reach out to someone you haven't talked to in a while",
                    "Give a genuine compliment to three different people today",
                    "Listen actively to someone without interrupting for 5 minutes"
                ])
            ],

            ChallengeCategory.HEALTH.value: [
                TemplateGroup('physical', [
                    "Do 20 push-ups or 10 minutes of stretching",
                    "Take a 15-minute walk outside",
                    "Drink 8 glasses of water today",
                    "Try a new healthy recipe for dinner"
                ]),
                TemplateGroup('mental', [
                    "Practice deep breathing for 5 minutes",
                    "Take a 10-minute break from all screens",
                    "Do something that makes you laugh today",
                    "Practice mindfulness while eating one meal"
                ])
            ],

            ChallengeCategory.LEARNING.value: [
                TemplateGroup('skill', [
                    "Learn one new word in a language you're studying",
                    "Watch a 10-minute educational video on a new topic",
                    "Read 20 pages of a book you've been meaning to finish",
                    "Practice a musical instrument for 15 minutes"
                ]),
                TemplateGroup('knowledge', [
                    "Research a topic you're curious about for 15 minutes",
                    "Ask someone about their expertise or passion",
                    "Try to solve a puzzle or brain teaser",
                    "Learn about a historical event that happened on this date"
                ])
            ]
        }

    def pick(self, category: str, rng: random.Random) -> ChallengeTemplate:
        """Случайная группа, затем случайный шаблон внутри нее"""
        groups = self.templates.get(category)
        if not groups:
            raise KeyError(f"No templates for category '{category}'")

        group = groups[rng.randrange(len(groups))]
        text = group.templates[rng.randrange(len(group.templates))]
        return ChallengeTemplate(category=category, type=group.type, text=text)

# ===== PERSONALIZATION =====

def time_of_day_phrase(hour: int) -> str:
    if hour < 12:
        return "this morning"
    if hour < 17:
        return "this afternoon"
    return "this evening"

def personalize_challenge(template: str, difficulty: Difficulty, hour: int) -> str:
    """Персонализировать текст шаблона.

    Замены буквальные и только по первому вхождению, как в сохраненных
    ранее заданиях. Например для hard "15 minutes" превращается в
    "115 minutes", потому что "5 minutes" входит в "15 minutes".
    """
    personalized = template.replace("today", time_of_day_phrase(hour), 1)

    if difficulty == Difficulty.EASY:
        personalized = personalized.replace("15 minutes", "5 minutes", 1)
        personalized = personalized.replace("20 push-ups", "10 push-ups", 1)
    elif difficulty == Difficulty.HARD:
        personalized = personalized.replace("5 minutes", "15 minutes", 1)
        personalized = personalized.replace("10 push-ups", "30 push-ups", 1)

    return personalized

def generate_title(description: str, category: str) -> str:
    emoji = CATEGORY_EMOJIS.get(category, DEFAULT_EMOJI)
    words = " ".join(description.split(" ")[:4])
    return f"{emoji} {words}..."

# ===== MAIN GENERATOR =====

class AIChallengeGenerator:
    """Генератор ежедневных заданий с кэшем по календарным дням"""

    def __init__(self, storage: "StorageService", rng: Optional[random.Random] = None,
                 clock: Optional[Clock] = None):
        self.storage = storage
        self.rng = rng or random.Random()
        self.clock = clock or storage.clock
        self.template_provider = ChallengeTemplateProvider()

        self.user_preferences: Optional[Preferences] = None
        self.challenge_history: List[Challenge] = []
        self.is_initialized = False

        self.stats = GenerationStats()

    async def initialize(self) -> None:
        """Загрузка настроек и истории"""
        await self.load_user_preferences()
        await self.load_challenge_history()
        self.is_initialized = True
        logger.info(f"Challenge generator initialized - difficulty={self.user_preferences.difficulty.value}, "
                    f"categories={self.user_preferences.categories}, history={len(self.challenge_history)}")

    async def load_user_preferences(self) -> None:
        try:
            self.user_preferences = await self.storage.read_preferences()
        except StorageError as e:
            logger.error(f"Error loading preferences: {e}")
            self.user_preferences = Preferences()

    async def load_challenge_history(self) -> None:
        try:
            self.challenge_history = await self.storage.read_history()
        except StorageError as e:
            logger.error(f"Error loading history: {e}")
            self.challenge_history = []

    # ===== GENERATION =====

    def generate_daily_challenges(self) -> List[Challenge]:
        """Сгенерировать набор заданий без кэша"""
        preferences = self.user_preferences or Preferences()
        selected = self.select_categories(preferences.categories)
        now = self.clock.now()

        challenges = [
            self.generate_challenge_for_category(category, index, preferences.difficulty, now)
            for index, category in enumerate(selected)
        ]

        self.stats.batches_generated += 1
        self.stats.challenges_generated += len(challenges)
        logger.debug(f"Generated challenges for categories {selected}")
        return challenges

    def select_categories(self, available_categories: List[str]) -> List[str]:
        """Выбрать категории для слотов: сначала без повторов, потом с повторами"""
        if not available_categories:
            raise ValueError("No categories configured")

        categories = list(available_categories)
        selected = []

        while len(selected) < CHALLENGES_PER_DAY and categories:
            selected.append(categories.pop(self.rng.randrange(len(categories))))

        while len(selected) < CHALLENGES_PER_DAY:
            selected.append(available_categories[self.rng.randrange(len(available_categories))])

        return selected[:CHALLENGES_PER_DAY]

    def generate_challenge_for_category(self, category: str, index: int,
                                        difficulty: Difficulty, now: datetime) -> Challenge:
        template = self.template_provider.pick(category, self.rng)
        modifiers = DIFFICULTY_MODIFIERS[difficulty]
        description = personalize_challenge(template.text, difficulty, now.hour)

        return Challenge(
            id=f"challenge_{int(now.timestamp() * 1000)}_{index}",
            title=generate_title(description, category),
            description=description,
            category=category,
            type=template.type,
            difficulty=difficulty,
            estimated_time=modifiers.time,
            effort_level=modifiers.effort,
            complexity=modifiers.complexity,
            created_at=now,
            personalization_factors=self.get_personalization_factors(difficulty, now)
        )

    def get_personalization_factors(self, difficulty: Difficulty, now: datetime) -> PersonalizationFactors:
        return PersonalizationFactors(
            time_of_day=now.hour,
            day_of_week=day_of_week(now),
            user_difficulty=difficulty,
            recent_categories=self.get_recent_categories(),
            success_rate=self.calculate_success_rate()
        )

    def get_recent_categories(self) -> Dict[str, int]:
        recent = self.challenge_history[-RECENT_HISTORY_WINDOW:]
        return dict(Counter(challenge.category for challenge in recent))

    def calculate_success_rate(self) -> float:
        if not self.challenge_history:
            return DEFAULT_SUCCESS_RATE

        completed = sum(1 for c in self.challenge_history if c.completed)
        return completed / len(self.challenge_history)

    # ===== PERSISTENCE =====

    async def save_challenges(self, challenges: List[Challenge]) -> bool:
        """Сохранить набор под ключом сегодняшнего дня и дописать в историю"""
        try:
            today = self.clock.now().date()
            await self.storage.write_daily_challenges(today, challenges)
            self.challenge_history = await self.storage.append_history(challenges)
            return True
        except StorageError as e:
            logger.error(f"Error saving challenges: {e}")
            self.stats.failed_requests += 1
            return False

    async def get_todays_challenges(self) -> List[Challenge]:
        """Набор на сегодня: из кэша или сгенерированный и сохраненный"""
        try:
            if not self.is_initialized:
                await self.initialize()

            today = self.clock.now().date()
            key = day_key(today)
            cached = await self.storage.read_daily_challenges(today)
            if cached is not None:
                self.stats.cache_hits += 1
                logger.debug(f"Returning cached challenges for {key}")
                return cached

            challenges = self.generate_daily_challenges()
            await self.save_challenges(challenges)
            self.stats.record_batch(key)
            logger.info(f"Generated {len(challenges)} challenges for {key}")
            return challenges

        except StorageError as e:
            logger.error(f"Error getting today's challenges: {e}")
            self.stats.failed_requests += 1
            return []

    async def toggle_challenge(self, challenge_id: str) -> Optional[Challenge]:
        """Переключить выполнение задания из сегодняшнего набора"""
        try:
            today = self.clock.now().date()
            challenges = await self.storage.read_daily_challenges(today)
            if not challenges:
                logger.warning(f"No challenges stored for {day_key(today)}")
                return None

            toggled = None
            for challenge in challenges:
                if challenge.id == challenge_id:
                    challenge.completed = not challenge.completed
                    challenge.completed_at = self.clock.now() if challenge.completed else None
                    toggled = challenge

            if toggled is None:
                logger.warning(f"Challenge {challenge_id} is not part of today's set")
                return None

            await self.storage.write_daily_challenges(today, challenges)
            await self.storage.update_history_entry(toggled)
            for index, entry in enumerate(self.challenge_history):
                if entry.id == toggled.id:
                    self.challenge_history[index] = toggled.model_copy(deep=True)
            return toggled

        except StorageError as e:
            logger.error(f"Error toggling challenge {challenge_id}: {e}")
            self.stats.failed_requests += 1
            return None

    def get_stats(self) -> Dict[str, Any]:
        """Получить статистику генератора"""
        return {
            'generator': self.stats.to_dict(),
            'initialized': self.is_initialized,
            'history_size': len(self.challenge_history),
            'success_rate': round(self.calculate_success_rate(), 2),
            'difficulty': self.user_preferences.difficulty.value if self.user_preferences else None,
            'categories': list(self.user_preferences.categories) if self.user_preferences else []
        }

__all__ = [
    'CHALLENGES_PER_DAY',
    'STATS_DAYS_LIMIT',
    'DIFFICULTY_MODIFIERS',
    'CATEGORY_EMOJIS',
    'ChallengeTemplate',
    'TemplateGroup',
    'DifficultyModifier',
    'GenerationStats',
    'ChallengeTemplateProvider',
    'time_of_day_phrase',
    'personalize_challenge',
    'generate_title',
    'AIChallengeGenerator'
]

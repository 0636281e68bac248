#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Daily Challenges v1.0 - Core Data Models
Модели данных с валидацией и типизацией

Все модели сериализуются в camelCase, как и в исходном формате хранилища
(completedChallenges, estimatedTime, personalizationFactors и т.д.)

Версия: 1.0.0
"""

import re
from datetime import datetime
from typing import Dict, List, Optional
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

# ===== ENUMS =====

class Difficulty(str, Enum):
    """Уровни сложности"""
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"

class ChallengeCategory(str, Enum):
    """Категории заданий"""
    PERSONAL = "personal"
    HEALTH = "health"
    LEARNING = "learning"

DEFAULT_CATEGORIES = [
    ChallengeCategory.PERSONAL.value,
    ChallengeCategory.HEALTH.value,
    ChallengeCategory.LEARNING.value
]

REMINDER_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")

# ===== BASE =====

class StoredModel(BaseModel):
    """Базовая модель для данных, лежащих в хранилище"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_dict(self) -> Dict:
        return self.model_dump(by_alias=True, mode="json")

# ===== PREFERENCES =====

class Preferences(StoredModel):
    """Пользовательские настройки генерации"""
    difficulty: Difficulty = Difficulty.MEDIUM
    categories: List[str] = Field(default_factory=lambda: list(DEFAULT_CATEGORIES))
    notifications: bool = True
    reminder_time: str = "09:00"

    @field_validator('categories')
    @classmethod
    def validate_categories(cls, v):
        known = {c.value for c in ChallengeCategory}
        unique = []
        for category in v:
            category = category.strip().lower()
            if category not in known:
                raise ValueError(f"Unknown category '{category}', expected one of {sorted(known)}")
            if category not in unique:
                unique.append(category)
        if not unique:
            raise ValueError("At least one category is required")
        return unique

    @field_validator('reminder_time')
    @classmethod
    def validate_reminder_time(cls, v):
        if not REMINDER_TIME_PATTERN.match(v):
            raise ValueError("reminderTime must be in HH:MM format")
        return v

# ===== USER =====

class CompletionRecord(StoredModel):
    """Запись о выполнении задания"""
    id: str
    completed_at: datetime

class UserProfile(StoredModel):
    """Профиль пользователя с прогрессом"""
    id: str
    name: str = "User"
    join_date: datetime
    completed_challenges: List[CompletionRecord] = Field(default_factory=list)
    current_streak: int = Field(0, ge=0)
    total_challenges: int = Field(0, ge=0)
    preferences: Preferences = Field(default_factory=Preferences)

# ===== CHALLENGES =====

class PersonalizationFactors(StoredModel):
    """Сигналы персонализации, с которыми было создано задание"""
    time_of_day: int = Field(..., ge=0, le=23)
    day_of_week: int = Field(..., ge=0, le=6)
    user_difficulty: Difficulty
    recent_categories: Dict[str, int] = Field(default_factory=dict)
    success_rate: float = Field(..., ge=0.0, le=1.0)

class Challenge(StoredModel):
    """Сгенерированное задание на день"""
    id: str
    title: str
    description: str
    category: str
    type: str
    difficulty: Difficulty
    estimated_time: int
    effort_level: int
    complexity: int
    created_at: datetime
    completed: bool = False
    completed_at: Optional[datetime] = None
    user_notes: str = ""
    ai_generated: bool = True
    personalization_factors: Optional[PersonalizationFactors] = None

# ===== EXPORT =====

class ExportSnapshot(StoredModel):
    """Снимок всех данных пользователя для резервной копии"""
    user_data: Optional[UserProfile] = None
    challenge_history: List[Challenge] = Field(default_factory=list)
    preferences: Optional[Preferences] = None
    export_date: datetime
    version: str = "1.0.0"

__all__ = [
    'Difficulty',
    'ChallengeCategory',
    'DEFAULT_CATEGORIES',
    'StoredModel',
    'Preferences',
    'CompletionRecord',
    'UserProfile',
    'PersonalizationFactors',
    'Challenge',
    'ExportSnapshot'
]

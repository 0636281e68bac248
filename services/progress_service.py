# services/progress_service.py

"""
Сервис прогресса пользователя: профиль, счетчик выполненных заданий и streak.

Streak считается по календарным дням во временной зоне часов. При каждом
выполнении новый streak вычисляется по дню предыдущей записи о выполнении:

- предыдущая запись вчера      -> streak + 1
- предыдущая запись сегодня    -> streak не меняется
- предыдущая запись раньше     -> streak = 1
- предыдущей записи нет        -> streak = 1
"""

import logging
import uuid
from datetime import date, datetime
from typing import Optional

from core.database import SerializationError
from core.models import CompletionRecord, Preferences, UserProfile
from services.storage_service import StorageService
from utils.datetime_utils import Clock, previous_day
from utils.decorators import storage_fallback

logger = logging.getLogger(__name__)

def next_streak(current_streak: int, previous_completion: Optional[datetime],
                today: date, clock: Clock) -> int:
    """Новое значение streak после выполнения задания сегодня"""
    if previous_completion is None:
        return 1

    last_day = clock.localize(previous_completion).date()
    if last_day == previous_day(today):
        return current_streak + 1
    if last_day != today:
        return 1
    # Несколько выполнений за один день streak не меняют
    return current_streak

def apply_completion(profile: UserProfile, challenge_id: str, clock: Clock) -> UserProfile:
    """Записать выполнение в профиль и пересчитать streak"""
    now = clock.now()
    profile.completed_challenges.append(CompletionRecord(id=challenge_id, completed_at=now))
    profile.total_challenges += 1

    previous = None
    if len(profile.completed_challenges) >= 2:
        previous = profile.completed_challenges[-2].completed_at

    profile.current_streak = next_streak(profile.current_streak, previous, now.date(), clock)
    return profile

class ProgressService:
    """Профиль пользователя и его прогресс"""

    def __init__(self, storage: StorageService, clock: Optional[Clock] = None):
        self.storage = storage
        self.clock = clock or storage.clock

    def create_user_profile(self, name: str = "User") -> UserProfile:
        """Новый профиль для первого запуска"""
        return UserProfile(
            id=uuid.uuid4().hex,
            name=name,
            join_date=self.clock.now(),
            preferences=Preferences()
        )

    @storage_fallback(None, "Error initializing user")
    async def bootstrap_user(self, name: str = "User") -> Optional[UserProfile]:
        """Загрузить профиль или создать новый при первом запуске"""
        try:
            profile = await self.storage.read_user_data()
        except SerializationError as e:
            logger.warning(f"Stored user data is unreadable, creating a new profile: {e}")
            profile = None

        if profile is not None:
            logger.debug(f"Loaded user profile {profile.id}")
            return profile

        profile = self.create_user_profile(name)
        await self.storage.write_user_data(profile)
        logger.info(f"Created new user profile {profile.id}")
        return profile

    @storage_fallback(False, "Error updating user progress")
    async def update_user_progress(self, challenge_id: str, completed: bool) -> bool:
        profile = await self.storage.read_user_data()
        if profile is None:
            logger.warning(f"No user profile, progress for {challenge_id} not recorded")
            return False

        if completed:
            apply_completion(profile, challenge_id, self.clock)
            logger.info(f"Challenge {challenge_id} completed, streak={profile.current_streak}, "
                        f"total={profile.total_challenges}")

        await self.storage.write_user_data(profile)
        return True

    @storage_fallback(False, "Error marking challenge completed")
    async def mark_challenge_completed(self, challenge_id: str) -> bool:
        """Отметить задание выполненным в истории и обновить прогресс"""
        history = await self.storage.read_history()
        now = self.clock.now()
        for challenge in history:
            if challenge.id == challenge_id:
                challenge.completed = True
                challenge.completed_at = now
        await self.storage.write_history(history)
        return await self.update_user_progress(challenge_id, True)

__all__ = [
    'next_streak',
    'apply_completion',
    'ProgressService'
]

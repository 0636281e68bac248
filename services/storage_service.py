# services/storage_service.py

"""
Сервис хранения данных пользователя поверх хранилища ключ-значение.

Публичные методы никогда не пробрасывают ошибки хранилища: вместо этого
они пишут ошибку в лог и возвращают None, пустой список или False.
Методы read_*/write_*/append_* наоборот пробрасывают StorageError и
используются другими сервисами, которым нужно различать "нет данных" и сбой.
"""

import json
import logging
from datetime import date
from typing import Any, Iterable, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from core.database import KeyValueStore, SerializationError
from core.models import Challenge, ExportSnapshot, Preferences, UserProfile
from utils.datetime_utils import Clock, day_key
from utils.decorators import storage_fallback

logger = logging.getLogger(__name__)

USER_DATA_KEY = "userData"
PREFERENCES_KEY = "userPreferences"
HISTORY_KEY = "challengeHistory"
DAILY_CHALLENGES_PREFIX = "dailyChallenges_"

HISTORY_LIMIT = 100
EXPORT_VERSION = "1.0.0"

ModelT = TypeVar("ModelT", bound=BaseModel)

def daily_challenges_key(day: date) -> str:
    return f"{DAILY_CHALLENGES_PREFIX}{day_key(day)}"

def cap_history(history: List[Challenge], limit: int = HISTORY_LIMIT) -> List[Challenge]:
    """Оставить только последние limit записей в исходном порядке"""
    if len(history) > limit:
        return history[len(history) - limit:]
    return history

class StorageService:
    """Профиль, настройки, история и ежедневные наборы заданий"""

    def __init__(self, store: KeyValueStore, clock: Optional[Clock] = None):
        self.store = store
        self.clock = clock or Clock()

    # ===== СЕРИАЛИЗАЦИЯ =====

    async def _read_json(self, key: str) -> Any:
        raw = await self.store.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise SerializationError(f"Malformed JSON under '{key}': {e}") from e

    async def _write_json(self, key: str, value: Any) -> None:
        try:
            raw = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise SerializationError(f"Cannot serialize value for '{key}': {e}") from e
        await self.store.set(key, raw)

    @staticmethod
    def _parse(model: Type[ModelT], data: Any, key: str) -> ModelT:
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise SerializationError(f"Invalid {model.__name__} under '{key}': {e}") from e

    def _parse_challenges(self, data: Any, key: str) -> List[Challenge]:
        if not isinstance(data, list):
            raise SerializationError(f"Expected a list under '{key}', got {type(data).__name__}")
        return [self._parse(Challenge, item, key) for item in data]

    # ===== RAISING API =====

    async def read_user_data(self) -> Optional[UserProfile]:
        data = await self._read_json(USER_DATA_KEY)
        if data is None:
            return None
        return self._parse(UserProfile, data, USER_DATA_KEY)

    async def write_user_data(self, profile: UserProfile) -> None:
        await self._write_json(USER_DATA_KEY, profile.to_dict())

    async def read_preferences(self) -> Preferences:
        data = await self._read_json(PREFERENCES_KEY)
        if data is None:
            return Preferences()
        return self._parse(Preferences, data, PREFERENCES_KEY)

    async def read_history(self) -> List[Challenge]:
        data = await self._read_json(HISTORY_KEY)
        if data is None:
            return []
        return self._parse_challenges(data, HISTORY_KEY)

    async def write_history(self, history: List[Challenge]) -> None:
        await self._write_json(HISTORY_KEY, [c.to_dict() for c in history])

    async def append_history(self, challenges: Iterable[Challenge]) -> List[Challenge]:
        """Дописать задания в историю и обрезать ее до HISTORY_LIMIT.

        Нечитаемая история считается пустой и перезаписывается.
        """
        try:
            existing = await self.read_history()
        except SerializationError as e:
            logger.warning(f"Stored challenge history is unreadable, starting a new one: {e}")
            existing = []
        merged = existing + list(challenges)
        updated = cap_history(merged)
        await self.write_history(updated)
        if len(updated) < len(merged):
            logger.debug(f"Challenge history capped, evicted {len(merged) - len(updated)} oldest entries")
        return updated

    async def read_daily_challenges(self, day: date) -> Optional[List[Challenge]]:
        key = daily_challenges_key(day)
        data = await self._read_json(key)
        if data is None:
            return None
        return self._parse_challenges(data, key)

    async def write_daily_challenges(self, day: date, challenges: List[Challenge]) -> None:
        await self._write_json(daily_challenges_key(day), [c.to_dict() for c in challenges])

    async def update_history_entry(self, challenge: Challenge) -> bool:
        """Заменить запись истории с тем же id. Возвращает True, если нашлась"""
        history = await self.read_history()
        found = False
        for index, entry in enumerate(history):
            if entry.id == challenge.id:
                history[index] = challenge
                found = True
        if found:
            await self.write_history(history)
        return found

    # ===== ПРОФИЛЬ =====

    @storage_fallback(None, "Error loading user data")
    async def load_user_data(self) -> Optional[UserProfile]:
        return await self.read_user_data()

    @storage_fallback(False, "Error saving user data")
    async def save_user_data(self, profile: UserProfile) -> bool:
        await self.write_user_data(profile)
        return True

    # ===== НАСТРОЙКИ =====

    @storage_fallback(None, "Error loading preferences")
    async def load_user_preferences(self) -> Optional[Preferences]:
        return await self.read_preferences()

    @storage_fallback(False, "Error saving preferences")
    async def save_user_preferences(self, preferences: Preferences) -> bool:
        await self._write_json(PREFERENCES_KEY, preferences.to_dict())
        logger.info(f"Preferences saved: difficulty={preferences.difficulty.value}, "
                    f"categories={preferences.categories}")
        return True

    # ===== ИСТОРИЯ =====

    @storage_fallback(list, "Error loading challenge history")
    async def load_challenge_history(self) -> List[Challenge]:
        return await self.read_history()

    @storage_fallback(False, "Error saving challenge history")
    async def save_challenge_history(self, challenges: Iterable[Challenge]) -> bool:
        await self.append_history(challenges)
        return True

    # ===== ОБСЛУЖИВАНИЕ =====

    @storage_fallback(False, "Error clearing data")
    async def clear_all_data(self) -> bool:
        keys = [
            USER_DATA_KEY,
            HISTORY_KEY,
            PREFERENCES_KEY,
            daily_challenges_key(self.clock.now().date())
        ]
        await self.store.multi_remove(keys)
        logger.info("All user data cleared")
        return True

    @storage_fallback(None, "Error exporting data")
    async def export_user_data(self) -> Optional[ExportSnapshot]:
        snapshot = ExportSnapshot(
            user_data=await self.read_user_data(),
            challenge_history=await self.read_history(),
            preferences=await self.read_preferences(),
            export_date=self.clock.now(),
            version=EXPORT_VERSION
        )
        logger.info(f"Export snapshot prepared ({len(snapshot.challenge_history)} history entries)")
        return snapshot

__all__ = [
    'USER_DATA_KEY',
    'PREFERENCES_KEY',
    'HISTORY_KEY',
    'DAILY_CHALLENGES_PREFIX',
    'HISTORY_LIMIT',
    'EXPORT_VERSION',
    'daily_challenges_key',
    'cap_history',
    'StorageService'
]

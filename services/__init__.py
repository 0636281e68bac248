# services/__init__.py

"""
Модуль сервисов Daily Challenges

AppContext создается один раз при старте процесса и передается вызывающему
коду. Он связывает хранилище, сервис данных, трекер прогресса и генератор
заданий и предоставляет операции, которые нужны слою интерфейса.
"""

import logging
import random
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from config import AppConfig
from core.ai_service import AIChallengeGenerator
from core.database import KeyValueStore, create_store
from core.models import Challenge, ExportSnapshot, Preferences, UserProfile
from utils.datetime_utils import Clock

from .data_export import export_history_to_csv, export_to_json
from .progress_service import ProgressService
from .storage_service import StorageService

logger = logging.getLogger(__name__)

class AppContext:
    """
    Контекст приложения

    Обеспечивает:
    - Создание сервисов в нужном порядке
    - Один генератор заданий на процесс без глобального состояния
    - Единый набор операций для интерфейса
    """

    def __init__(self, store: KeyValueStore, clock: Optional[Clock] = None,
                 rng: Optional[random.Random] = None, export_dir: Path = Path("exports")):
        self.clock = clock or Clock()
        self.store = store
        self.export_dir = export_dir

        self.storage = StorageService(store, self.clock)
        self.progress = ProgressService(self.storage, self.clock)
        self.generator = AIChallengeGenerator(self.storage, rng=rng, clock=self.clock)

        self.user: Optional[UserProfile] = None

    # ===== ЖИЗНЕННЫЙ ЦИКЛ =====

    async def start(self) -> Optional[UserProfile]:
        """Загрузить или создать профиль и подготовить генератор"""
        logger.info("Starting Daily Challenges...")
        self.user = await self.progress.bootstrap_user()
        await self.initialize_ai_challenges()
        return self.user

    async def initialize_ai_challenges(self) -> None:
        await self.generator.initialize()

    # ===== ЗАДАНИЯ =====

    async def get_todays_challenges(self) -> List[Challenge]:
        return await self.generator.get_todays_challenges()

    def generate_daily_challenges(self) -> List[Challenge]:
        return self.generator.generate_daily_challenges()

    async def save_challenges(self, challenges: List[Challenge]) -> bool:
        return await self.generator.save_challenges(challenges)

    async def toggle_challenge_completion(self, challenge_id: str) -> Optional[Challenge]:
        """Переключить выполнение задания и обновить прогресс при выполнении"""
        challenge = await self.generator.toggle_challenge(challenge_id)
        if challenge is None or not challenge.completed:
            return challenge

        profile = await self.storage.load_user_data()
        if profile is not None and any(r.id == challenge_id for r in profile.completed_challenges):
            # Повторное выполнение после снятия отметки прогресс не меняет
            logger.debug(f"Challenge {challenge_id} already recorded as completed")
            self.user = profile
        else:
            await self.update_user_progress(challenge_id, True)
        return challenge

    async def mark_challenge_completed(self, challenge_id: str) -> bool:
        result = await self.progress.mark_challenge_completed(challenge_id)
        if result:
            self.user = await self.storage.load_user_data()
            await self.generator.load_challenge_history()
        return result

    # ===== ПРОФИЛЬ И ПРОГРЕСС =====

    async def load_user_data(self) -> Optional[UserProfile]:
        return await self.storage.load_user_data()

    async def save_user_data(self, profile: UserProfile) -> bool:
        result = await self.storage.save_user_data(profile)
        if result:
            self.user = profile
        return result

    async def update_user_progress(self, challenge_id: str, completed: bool) -> bool:
        result = await self.progress.update_user_progress(challenge_id, completed)
        if result:
            self.user = await self.storage.load_user_data()
        return result

    async def bootstrap_user(self) -> Optional[UserProfile]:
        self.user = await self.progress.bootstrap_user()
        return self.user

    # ===== НАСТРОЙКИ И ИСТОРИЯ =====

    async def load_user_preferences(self) -> Optional[Preferences]:
        return await self.storage.load_user_preferences()

    async def save_user_preferences(self, preferences: Preferences) -> bool:
        result = await self.storage.save_user_preferences(preferences)
        if result:
            self.generator.user_preferences = preferences
        return result

    async def load_challenge_history(self) -> List[Challenge]:
        return await self.storage.load_challenge_history()

    async def save_challenge_history(self, challenges: Iterable[Challenge]) -> bool:
        result = await self.storage.save_challenge_history(challenges)
        if result:
            await self.generator.load_challenge_history()
        return result

    # ===== ОБСЛУЖИВАНИЕ =====

    async def clear_all_data(self) -> bool:
        result = await self.storage.clear_all_data()
        if result:
            self.user = None
            self.generator.user_preferences = None
            self.generator.challenge_history = []
            self.generator.is_initialized = False
        return result

    async def export_user_data(self) -> Optional[ExportSnapshot]:
        return await self.storage.export_user_data()

    async def export_to_file(self, format: str = "json") -> Optional[Path]:
        """Экспорт в файл: json - полный снимок, csv - история заданий"""
        if format == "csv":
            history = await self.storage.load_challenge_history()
            return export_history_to_csv(history, self.export_dir)

        snapshot = await self.export_user_data()
        if snapshot is None:
            return None
        return export_to_json(snapshot, self.export_dir)

    def get_stats(self) -> Dict[str, Any]:
        stats = self.generator.get_stats()
        if self.user:
            stats['user'] = {
                'id': self.user.id,
                'current_streak': self.user.current_streak,
                'total_challenges': self.user.total_challenges
            }
        return stats

def create_app_context(app_config: AppConfig, rng: Optional[random.Random] = None) -> AppContext:
    """Создать контекст приложения по конфигурации"""
    store = create_store(app_config.storage.backend.value, app_config.storage.path)
    return AppContext(
        store,
        clock=Clock(app_config.timezone),
        rng=rng,
        export_dir=app_config.export_dir
    )

__all__ = [
    'AppContext',
    'create_app_context',
    'StorageService',
    'ProgressService'
]

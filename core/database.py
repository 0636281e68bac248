#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Daily Challenges v1.0 - Key-Value Storage
Локальное хранилище строковых значений по строковым ключам

Хранилище ничего не знает о моделях: значения приходят уже
сериализованными в JSON. Все операции асинхронные.

Версия: 1.0.0
"""

import json
import asyncio
import threading
import shutil
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, Optional
import logging

logger = logging.getLogger(__name__)

# ===== EXCEPTIONS =====

class StorageError(Exception):
    """Базовое исключение для ошибок хранилища"""
    pass

class StorageReadError(StorageError):
    """Ошибка чтения из хранилища"""
    pass

class StorageWriteError(StorageError):
    """Ошибка записи в хранилище"""
    pass

class SerializationError(StorageError):
    """Сохраненное значение не удалось разобрать"""
    pass

# ===== STORES =====

class KeyValueStore(ABC):
    """Интерфейс постоянного хранилища ключ-значение"""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Получить значение или None, если ключа нет"""

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Записать значение"""

    @abstractmethod
    async def multi_remove(self, keys: Iterable[str]) -> None:
        """Удалить несколько ключей; отсутствующие ключи пропускаются"""

class MemoryStore(KeyValueStore):
    """Хранилище в памяти процесса"""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise StorageWriteError(f"Value for '{key}' must be a string")
        self.data[key] = value

    async def multi_remove(self, keys: Iterable[str]) -> None:
        for key in keys:
            self.data.pop(key, None)

class JsonFileStore(KeyValueStore):
    """Хранилище в одном JSON-файле с атомарной записью"""

    def __init__(self, data_file: Path):
        self.data_file = Path(data_file)
        self.file_lock = threading.RLock()
        self._data: Optional[Dict[str, str]] = None

    # ===== SYNC I/O =====

    def _load_sync(self) -> Dict[str, str]:
        """Синхронная загрузка файла в память"""
        with self.file_lock:
            if self._data is not None:
                return self._data

            if not self.data_file.exists():
                logger.info(f"Storage file {self.data_file} does not exist, starting empty")
                self._data = {}
                return self._data

            try:
                with open(self.data_file, 'r', encoding='utf-8') as f:
                    data = json.load(f)
            except json.JSONDecodeError as e:
                logger.error(f"Storage file is corrupted: {e}")
                self._quarantine_corrupted()
                self._data = {}
                return self._data
            except OSError as e:
                raise StorageReadError(f"Failed to read {self.data_file}: {e}") from e

            if not isinstance(data, dict):
                logger.error("Storage file has unexpected format, expected an object")
                self._quarantine_corrupted()
                data = {}

            self._data = {str(k): v for k, v in data.items() if isinstance(v, str)}
            logger.debug(f"Loaded {len(self._data)} keys from {self.data_file}")
            return self._data

    def _quarantine_corrupted(self) -> None:
        """Отложить поврежденный файл в сторону и начать с пустого хранилища"""
        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        corrupted = self.data_file.with_name(f"{self.data_file.stem}.corrupted_{timestamp}.json")
        try:
            shutil.move(str(self.data_file), str(corrupted))
            logger.warning(f"Corrupted storage file moved to {corrupted}")
        except OSError as e:
            raise StorageReadError(f"Failed to move corrupted storage file: {e}") from e

    def _save_sync(self, data: Dict[str, str]) -> None:
        """Атомарное сохранение через временный файл"""
        temp_file = self.data_file.with_suffix('.tmp')
        try:
            self.data_file.parent.mkdir(parents=True, exist_ok=True)
            with open(temp_file, 'w', encoding='utf-8') as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            temp_file.replace(self.data_file)
        except OSError as e:
            if temp_file.exists():
                temp_file.unlink()
            raise StorageWriteError(f"Failed to write {self.data_file}: {e}") from e

    def _get_sync(self, key: str) -> Optional[str]:
        with self.file_lock:
            return self._load_sync().get(key)

    def _set_sync(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise StorageWriteError(f"Value for '{key}' must be a string")
        with self.file_lock:
            updated = dict(self._load_sync())
            updated[key] = value
            self._save_sync(updated)
            self._data = updated

    def _multi_remove_sync(self, keys: Iterable[str]) -> None:
        with self.file_lock:
            updated = dict(self._load_sync())
            for key in keys:
                updated.pop(key, None)
            self._save_sync(updated)
            self._data = updated

    # ===== ASYNC API =====

    async def get(self, key: str) -> Optional[str]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._get_sync, key)

    async def set(self, key: str, value: str) -> None:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._set_sync, key, value)

    async def multi_remove(self, keys: Iterable[str]) -> None:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._multi_remove_sync, list(keys))

def create_store(backend: str, data_file: Optional[Path] = None) -> KeyValueStore:
    """Создать хранилище по имени бэкенда"""
    if backend == "memory":
        return MemoryStore()
    if backend == "file":
        if data_file is None:
            raise ValueError("data_file is required for the file backend")
        return JsonFileStore(data_file)
    raise ValueError(f"Unknown storage backend: {backend}")

__all__ = [
    'StorageError',
    'StorageReadError',
    'StorageWriteError',
    'SerializationError',
    'KeyValueStore',
    'MemoryStore',
    'JsonFileStore',
    'create_store'
]

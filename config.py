#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Daily Challenges v1.0 - Configuration
Централизованная конфигурация с валидацией

Версия: 1.0.0
"""

import os
import sys
from pathlib import Path
from typing import Dict, Any, Optional
from dataclasses import dataclass
from enum import Enum

import pytz

class Environment(Enum):
    """Среды выполнения"""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"

class LogLevel(Enum):
    """Уровни логирования"""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

class StorageBackend(Enum):
    """Варианты хранилища ключ-значение"""
    FILE = "file"
    MEMORY = "memory"

@dataclass
class StorageConfig:
    """Конфигурация локального хранилища"""
    path: Path
    backend: StorageBackend = StorageBackend.FILE

@dataclass
class LoggingConfig:
    """Конфигурация логирования"""
    level: LogLevel = LogLevel.INFO
    to_file: bool = True
    log_dir: Path = Path("logs")
    format: str = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'

class AppConfig:
    """Главный класс конфигурации"""

    def __init__(self):
        self.environment = Environment(os.getenv('ENVIRONMENT', 'development'))
        self._load_config()
        self._validate_config()

    def _load_config(self):
        """Загрузка конфигурации из переменных окружения"""

        # Директории
        self.data_dir = Path(os.getenv('DATA_DIR', 'data'))
        self.export_dir = Path(os.getenv('EXPORT_DIR', 'exports'))

        # Хранилище
        self.storage = StorageConfig(
            path=self.data_dir / os.getenv('STORAGE_FILE', 'storage.json'),
            backend=StorageBackend(os.getenv('STORAGE_BACKEND', 'file').lower())
        )

        # Логирование
        self.logging = LoggingConfig(
            level=LogLevel(os.getenv('LOG_LEVEL', 'INFO').upper()),
            to_file=os.getenv('LOG_TO_FILE', 'true').lower() == 'true',
            log_dir=Path(os.getenv('LOG_DIR', 'logs')),
            format=os.getenv(
                'LOG_FORMAT',
                '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
            )
        )

        # Календарные сутки считаются в этой временной зоне
        self.timezone = os.getenv('TIMEZONE', 'UTC')

    def _validate_config(self):
        """Валидация конфигурации"""
        errors = []

        if self.timezone not in pytz.all_timezones_set:
            errors.append(f"Unknown TIMEZONE: {self.timezone}")

        if not self.storage.path.name.endswith('.json'):
            errors.append(f"STORAGE_FILE must be a .json file, got {self.storage.path.name}")

        if errors:
            raise ValueError("Configuration errors:\n" + "\n".join(f"• {error}" for error in errors))

    def ensure_directories(self):
        """Создание необходимых директорий"""
        directories = [self.data_dir, self.export_dir]
        if self.logging.to_file:
            directories.append(self.logging.log_dir)

        for directory in directories:
            directory.mkdir(parents=True, exist_ok=True)

    def get_logging_config(self, level: Optional[LogLevel] = None) -> Dict[str, Any]:
        """Получение конфигурации логирования

        level переопределяет LOG_LEVEL для корневого логгера и всех обработчиков
        """
        level = level or self.logging.level
        handlers = ['console']
        if self.logging.to_file:
            handlers.append('file')

        logging_config = {
            'version': 1,
            'disable_existing_loggers': False,
            'formatters': {
                'default': {
                    'format': self.logging.format,
                    'datefmt': '%Y-%m-%d %H:%M:%S'
                }
            },
            'handlers': {
                'console': {
                    'class': 'logging.StreamHandler',
                    'level': level.value,
                    'formatter': 'default',
                    'stream': sys.stderr
                }
            },
            'loggers': {
                '': {
                    'level': level.value,
                    'handlers': handlers,
                    'propagate': False
                }
            }
        }

        if self.logging.to_file:
            logging_config['handlers']['file'] = {
                'class': 'logging.handlers.RotatingFileHandler',
                'level': level.value,
                'formatter': 'default',
                'filename': str(self.logging.log_dir / f"challenges_{self.environment.value}.log"),
                'maxBytes': 10485760,  # 10MB
                'backupCount': 5,
                'encoding': 'utf-8'
            }

        return logging_config

# Глобальный экземпляр конфигурации
config = AppConfig()

__all__ = [
    'config',
    'AppConfig',
    'Environment',
    'LogLevel',
    'StorageBackend',
    'StorageConfig',
    'LoggingConfig'
]

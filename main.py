#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Daily Challenges v1.0 - Command Line Interface
Консольный интерфейс для ежедневных заданий

Версия: 1.0.0
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from config import LogLevel, config
from core.models import Challenge, Preferences
from services import AppContext, create_app_context
from utils.logger import setup_logger

logger = logging.getLogger(__name__)

def get_greeting(hour: int) -> str:
    if hour < 12:
        return "Good morning!"
    if hour < 17:
        return "Good afternoon!"
    return "Good evening!"

def format_challenges(challenges: List[Challenge]) -> str:
    """Форматирование набора заданий в человекочитаемом виде"""
    if not challenges:
        return "❌ Failed to load today's challenges"

    completed = sum(1 for c in challenges if c.completed)
    lines = [f"📅 Today's challenges: {completed}/{len(challenges)} completed", ""]
    for challenge in challenges:
        mark = "✅" if challenge.completed else "⭕"
        lines.append(f"{mark} {challenge.title}")
        lines.append(f"   {challenge.description}")
        lines.append(f"   [{challenge.category}/{challenge.type}] ~{challenge.estimated_time} min, id={challenge.id}")
    return "\n".join(lines)

def parse_categories(value: str) -> List[str]:
    return [c.strip() for c in value.split(",") if c.strip()]

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Ежедневные задания для саморазвития')
    parser.add_argument('--dev', action='store_true', help='Режим разработки (DEBUG логи)')
    parser.add_argument('--json', action='store_true', help='Вывод в формате JSON')

    subparsers = parser.add_subparsers(dest='command')

    subparsers.add_parser('today', help='Задания на сегодня')

    toggle = subparsers.add_parser('toggle', help='Отметить задание выполненным или снять отметку')
    toggle.add_argument('challenge_id')

    regenerate = subparsers.add_parser('regenerate', help='Сгенерировать набор без кэша')
    regenerate.add_argument('--save', action='store_true', help='Сохранить как набор на сегодня')

    subparsers.add_parser('profile', help='Профиль и streak')

    prefs = subparsers.add_parser('prefs', help='Показать или изменить настройки')
    prefs.add_argument('--difficulty', choices=['easy', 'medium', 'hard'])
    prefs.add_argument('--categories', type=parse_categories, help='Список через запятую')
    prefs.add_argument('--notifications', choices=['on', 'off'])
    prefs.add_argument('--reminder-time', help='Время напоминания HH:MM')

    history = subparsers.add_parser('history', help='История заданий')
    history.add_argument('--limit', type=int, default=10)

    export = subparsers.add_parser('export', help='Экспорт данных')
    export.add_argument('--format', choices=['json', 'csv'], default='json')

    subparsers.add_parser('stats', help='Статистика генератора')
    subparsers.add_parser('reset', help='Удалить все данные')

    return parser

async def update_preferences(app: AppContext, args: argparse.Namespace) -> Optional[Preferences]:
    current = await app.load_user_preferences() or Preferences()
    changes: Dict[str, Any] = {}
    if args.difficulty:
        changes['difficulty'] = args.difficulty
    if args.categories is not None:
        changes['categories'] = args.categories
    if args.notifications:
        changes['notifications'] = args.notifications == 'on'
    if args.reminder_time:
        changes['reminder_time'] = args.reminder_time

    if not changes:
        return current

    updated = Preferences.model_validate({**current.model_dump(), **changes})
    if not await app.save_user_preferences(updated):
        return None
    return updated

async def run_command(app: AppContext, args: argparse.Namespace) -> Any:
    await app.start()
    command = args.command or 'today'

    if command == 'today':
        return await app.get_todays_challenges()
    if command == 'toggle':
        return await app.toggle_challenge_completion(args.challenge_id)
    if command == 'regenerate':
        challenges = app.generate_daily_challenges()
        if args.save:
            await app.save_challenges(challenges)
        return challenges
    if command == 'profile':
        return app.user
    if command == 'prefs':
        return await update_preferences(app, args)
    if command == 'history':
        history = await app.load_challenge_history()
        return history[-args.limit:] if args.limit > 0 else history
    if command == 'export':
        path = await app.export_to_file(args.format)
        return {'exported': str(path) if path else None}
    if command == 'stats':
        return app.get_stats()
    if command == 'reset':
        return {'cleared': await app.clear_all_data()}
    raise ValueError(f"Unknown command: {command}")

def render(result: Any, as_json: bool, command: str, hour: int) -> str:
    if as_json:
        if isinstance(result, list):
            payload = [item.to_dict() for item in result]
        elif hasattr(result, 'to_dict'):
            payload = result.to_dict()
        else:
            payload = result
        return json.dumps(payload, ensure_ascii=False, indent=2)

    if command in ('today', 'regenerate'):
        return f"{get_greeting(hour)}\n\n{format_challenges(result)}"
    if command == 'history':
        return format_challenges(result) if result else "History is empty"
    if command == 'toggle':
        if result is None:
            return "❌ Challenge not found in today's set"
        return f"{'✅' if result.completed else '⭕'} {result.title}"
    if command == 'profile' and result is not None:
        return (f"👤 {result.name} (since {result.join_date:%Y-%m-%d})\n"
                f"🔥 Current streak: {result.current_streak}\n"
                f"🏆 Completed challenges: {result.total_challenges}")
    if command == 'prefs' and result is not None:
        return (f"⚙️ Difficulty: {result.difficulty.value}\n"
                f"📂 Categories: {', '.join(result.categories)}\n"
                f"🔔 Notifications: {'on' if result.notifications else 'off'} at {result.reminder_time}")
    return json.dumps(result if not hasattr(result, 'to_dict') else result.to_dict(),
                      ensure_ascii=False, indent=2)

def main():
    """Главная функция"""
    parser = build_parser()
    args = parser.parse_args()

    config.ensure_directories()
    setup_logger(config, LogLevel.DEBUG if args.dev else None)
    if args.dev:
        logger.info("🔧 Development mode enabled")

    app = create_app_context(config)

    try:
        result = asyncio.run(run_command(app, args))
    except ValidationError as e:
        print(f"❌ Invalid preferences: {e}")
        sys.exit(2)
    except KeyboardInterrupt:
        print("\n⚠️ Interrupted")
        sys.exit(130)

    print(render(result, args.json, args.command or 'today', app.clock.now().hour))

if __name__ == "__main__":
    main()

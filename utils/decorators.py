import functools
import logging

from core.database import StorageError

def storage_fallback(default, message: str):
    """Поймать ошибку хранилища, залогировать и вернуть значение по умолчанию.

    default может быть вызываемым объектом, чтобы не делить изменяемый
    список между вызовами.
    """
    def decorator(func):
        logger = logging.getLogger(func.__module__)

        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except StorageError as e:
                logger.error(f"{message}: {e}")
                return default() if callable(default) else default
        return wrapper
    return decorator

import logging
import logging.config
from typing import Optional

from config import AppConfig, LogLevel

def setup_logger(app_config: AppConfig, level: Optional[LogLevel] = None) -> logging.Logger:
    if app_config.logging.to_file:
        app_config.logging.log_dir.mkdir(exist_ok=True, parents=True)
    logging.config.dictConfig(app_config.get_logging_config(level))
    return logging.getLogger("challenges")

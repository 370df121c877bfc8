#!/usr/bin/env python3
"""
Logging Configuration for the offline booking queue
Provides console and rotating file logs, with a dedicated queue log
"""

import os
import logging
import logging.handlers
import shutil
from datetime import datetime
from typing import Optional

from infrastructure.settings import QueueSettings, get_settings

# Loggers that also write to the dedicated queue log
QUEUE_LOGGERS = (
    'OfflineQueue',
    'QueueStore',
    'QueueNotifier',
    'SyncOrchestrator',
    'ConflictDetector',
)


def setup_logging(settings: Optional[QueueSettings] = None, *, clear_previous: bool = True) -> str:
    """
    Set up logging with console and rotating file handlers.

    Previous logs in the log directory are cleared before the new session
    starts unless ``clear_previous`` is False.

    Returns:
        str: The log directory in use
    """
    settings = settings or get_settings()
    production_mode = settings.production_mode
    log_dir = os.path.abspath(settings.log_directory)

    if clear_previous and os.path.exists(log_dir):
        for filename in os.listdir(log_dir):
            file_path = os.path.join(log_dir, filename)
            try:
                if os.path.isfile(file_path) or os.path.islink(file_path):
                    os.unlink(file_path)
                elif os.path.isdir(file_path):
                    shutil.rmtree(file_path)
            except OSError as e:
                print(f'Failed to delete {file_path}. Reason: {e}')

    os.makedirs(log_dir, exist_ok=True)

    main_log_file = os.path.join(log_dir, 'app.log')
    error_log_file = os.path.join(log_dir, 'errors.log')
    queue_log_file = os.path.join(log_dir, 'offline_queue.log')

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.WARNING if production_mode else logging.DEBUG)
    root_logger.handlers = []

    detailed_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d in %(funcName)s()] - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    console_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.WARNING if production_mode else logging.INFO)
    console_handler.setFormatter(console_formatter)
    root_logger.addHandler(console_handler)

    main_file_handler = logging.handlers.RotatingFileHandler(
        main_log_file,
        maxBytes=10*1024*1024,  # 10MB
        backupCount=5,
        encoding='utf-8'
    )
    main_file_handler.setLevel(logging.WARNING if production_mode else logging.INFO)
    main_file_handler.setFormatter(detailed_formatter)
    root_logger.addHandler(main_file_handler)

    error_file_handler = logging.handlers.RotatingFileHandler(
        error_log_file,
        maxBytes=5*1024*1024,  # 5MB
        backupCount=5,
        encoding='utf-8'
    )
    error_file_handler.setLevel(logging.ERROR)
    error_file_handler.setFormatter(detailed_formatter)
    root_logger.addHandler(error_file_handler)

    queue_handler = logging.handlers.RotatingFileHandler(
        queue_log_file,
        maxBytes=20*1024*1024,  # 20MB
        backupCount=5,
        encoding='utf-8'
    )
    queue_handler.setLevel(logging.INFO if production_mode else logging.DEBUG)
    queue_handler.setFormatter(detailed_formatter)

    for name in QUEUE_LOGGERS:
        component_logger = logging.getLogger(name)
        component_logger.handlers = [queue_handler]
        component_logger.setLevel(logging.INFO if production_mode else logging.DEBUG)

    root_logger.info("="*80)
    root_logger.info(f"Offline queue logging initialized - {datetime.now()}")
    root_logger.info(f"Production Mode: {'ON' if production_mode else 'OFF'}")
    root_logger.info(f"Main log: {main_log_file}")
    root_logger.info(f"Error log: {error_log_file}")
    root_logger.info(f"Queue log: {queue_log_file}")
    root_logger.info("="*80)
    return log_dir
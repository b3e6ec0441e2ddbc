"""
Logging configuration for the sport-ground bot.

Call :func:`setup_logging` once from the entry point; importing this module
has no side effects.
"""

import logging
import logging.handlers
import os
import shutil
from datetime import datetime

# Loggers whose records also go to the dedicated polls.log file
POLL_LOGGERS = ('PollWorkflow', 'ActivityScheduler', 'ActivityDiscovery', 'ScheduledActivityRepository')

# Component loggers raised to INFO in production
COMPONENT_LOGGERS = (
    'BotApplication',
    'ReservationWizard',
    'BookingCoordinator',
    'CalendarSync',
    'GoogleCalendar',
    'TelegramMessenger',
    'ExclusiveRunLock',
) + POLL_LOGGERS


def _clear_directory(log_dir: str) -> None:
    for filename in os.listdir(log_dir):
        file_path = os.path.join(log_dir, filename)
        try:
            if os.path.isfile(file_path) or os.path.islink(file_path):
                os.unlink(file_path)
            elif os.path.isdir(file_path):
                shutil.rmtree(file_path)
        except OSError as e:
            print(f'Failed to delete {file_path}. Reason: {e}')


def setup_logging(production_mode: bool = False, log_dir: str = os.path.join('logs', 'latest_log'),
                  clear_previous: bool = True) -> None:
    """
    Set up console and rotating file handlers.

    Production mode keeps WARNING+ on the root logger and INFO for the
    application's own components; development mode logs everything.
    """
    if clear_previous and os.path.exists(log_dir):
        _clear_directory(log_dir)
    os.makedirs(log_dir, exist_ok=True)

    main_log_file = os.path.join(log_dir, 'bot.log')
    debug_log_file = os.path.join(log_dir, 'bot_debug.log')
    error_log_file = os.path.join(log_dir, 'bot_errors.log')
    polls_log_file = os.path.join(log_dir, 'polls.log')

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
    main_file_handler.setLevel(logging.INFO)
    main_file_handler.setFormatter(detailed_formatter)
    root_logger.addHandler(main_file_handler)

    if not production_mode:
        debug_file_handler = logging.handlers.RotatingFileHandler(
            debug_log_file,
            maxBytes=50*1024*1024,  # 50MB
            backupCount=3,
            encoding='utf-8'
        )
        debug_file_handler.setLevel(logging.DEBUG)
        debug_file_handler.setFormatter(detailed_formatter)
        root_logger.addHandler(debug_file_handler)

    error_file_handler = logging.handlers.RotatingFileHandler(
        error_log_file,
        maxBytes=5*1024*1024,  # 5MB
        backupCount=5,
        encoding='utf-8'
    )
    error_file_handler.setLevel(logging.ERROR)
    error_file_handler.setFormatter(detailed_formatter)
    root_logger.addHandler(error_file_handler)

    polls_handler = logging.handlers.RotatingFileHandler(
        polls_log_file,
        maxBytes=20*1024*1024,  # 20MB
        backupCount=5,
        encoding='utf-8'
    )
    polls_handler.setLevel(logging.INFO if production_mode else logging.DEBUG)
    polls_handler.setFormatter(detailed_formatter)
    for name in POLL_LOGGERS:
        logging.getLogger(name).addHandler(polls_handler)

    component_level = logging.INFO if production_mode else logging.DEBUG
    for name in COMPONENT_LOGGERS:
        logging.getLogger(name).setLevel(component_level)

    # Reduce noise from external libraries
    logging.getLogger('httpx').setLevel(logging.WARNING)
    logging.getLogger('httpcore').setLevel(logging.WARNING)
    logging.getLogger('telegram').setLevel(logging.INFO)

    root_logger.info("="*80)
    root_logger.info(f"Logging initialized - {datetime.now()}")
    root_logger.info(f"Production Mode: {'ON' if production_mode else 'OFF'}")
    root_logger.info(f"Main log: {main_log_file}")
    root_logger.info(f"Error log: {error_log_file}")
    root_logger.info(f"Polls log: {polls_log_file}")
    root_logger.info("="*80)

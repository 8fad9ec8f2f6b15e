import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

LOG_FORMAT = '%(asctime)s - %(name)s - %(threadName)s - %(levelname)s - %(message)s'
# Third-party loggers that are noisy at INFO/DEBUG while polling
QUIET_LOGGERS = ('urllib3', 'requests')


def setup_logger(
    name: str,
    log_dir: str | Path = "data/logs",
    level: int = logging.INFO,
    log_format: str = LOG_FORMAT,
    daily_rotation: bool = True,
    backup_count: int = 14,
    console_output: bool = False
) -> logging.Logger:
    """
    Configure the bot's logger: one file under `log_dir`, optional console.

    The bot runs for days, so with `daily_rotation` the file rolls over at
    midnight (`{name}.log` -> `{name}.log.YYYY-MM-DD`) and only
    `backup_count` old files are kept. Child loggers (`vibecheck.bot.app`,
    `vibecheck.bluesky.client`, ...) propagate into these handlers.

    :param name: Logger name (e.g., 'vibecheck')
    :param log_dir: Directory to store log files (default: 'data/logs')
    :param level: Logging level (default: logging.INFO)
    :param log_format: Log message format string
    :param daily_rotation: Roll the file over at midnight (default: True)
    :param backup_count: Rotated files to keep (default: 14)
    :param console_output: If True, also outputs logs to console (default: False)

    :return: Configured logger instance

    Example:
        >>> logger = setup_logger('vibecheck', 'data/logs/bot', console_output=True)
        >>> logger.info('Logged in')
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Avoid adding duplicate handlers
    if logger.handlers:
        return logger

    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)
    log_file = log_path / f"{name.replace('.', '_')}.log"

    if daily_rotation:
        file_handler = TimedRotatingFileHandler(
            log_file,
            when='midnight',
            backupCount=backup_count,
            encoding='utf-8'
        )
        file_handler.suffix = '%Y-%m-%d'
    else:
        file_handler = logging.FileHandler(log_file, encoding='utf-8')

    formatter = logging.Formatter(log_format)
    handlers = [file_handler]
    if console_output:
        handlers.append(logging.StreamHandler())

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    # Retry/connection chatter only at DEBUG
    if level > logging.DEBUG:
        for quiet in QUIET_LOGGERS:
            logging.getLogger(quiet).setLevel(logging.WARNING)

    return logger

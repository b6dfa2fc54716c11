import logging
import os
from datetime import timedelta


def setup_logger(log_file_path:str, logger_name:str, min_level:int=logging.DEBUG, log_format:str='%(asctime)s - %(levelname)s: %(message)s') -> logging.Logger:
    """Sets up a logger to save logs to the given filepath."""

    # Init a logger and set the lowest level to DEBUG (so all logs are captured)
    logger:logging.Logger = logging.getLogger(logger_name)
    logger.setLevel(min_level)

    # Prevent double logging if root logger is used
    logger.propagate = False

    # Avoid duplicate handlers if setup is called multiple times
    if not logger.handlers:

        # Create the output dir if it doesn't exist
        # NOTE: default path if log file path is None or empty string
        if log_file_path is None or not log_file_path:
            log_file_path = './logger_output.log'

        log_dir:str = os.path.dirname(log_file_path)
        if log_dir: os.makedirs(log_dir, exist_ok=True)

        # Create a file handler
        file_handler:logging.FileHandler = logging.FileHandler(log_file_path, encoding='utf-8')
        logger.addHandler(file_handler)

        # Set the format for logs
        formatter:logging.Formatter = logging.Formatter(log_format)
        file_handler.setFormatter(formatter)

    # Return the logger
    return logger


def to_seconds(duration:float|int|timedelta|None) -> float|None:
    """Normalizes a per-operation duration (seconds or timedelta) to seconds; None means no deadline."""

    # No deadline
    if duration is None: return None

    # Convert timedeltas
    if isinstance(duration, timedelta):
        seconds:float = duration.total_seconds()

    # Plain numbers (bool is an int subclass, reject it explicitly)
    elif isinstance(duration, (int, float)) and not isinstance(duration, bool):
        seconds = float(duration)

    else:
        raise TypeError(f"duration must be seconds or a timedelta, got {type(duration).__name__}")

    # Deadlines have to be in the future
    if seconds <= 0:
        raise ValueError(f"duration must be positive, got {seconds:g}s")

    return seconds

import logging
import os
import sys

# Third-party loggers that flood the console at INFO during a scan
NOISY_LIBRARIES = ("yfinance", "peewee", "urllib3")


def setup_logger(name="SignalEngine", log_level=logging.INFO, log_file=None, quiet_libraries=True):
    """
    Sets up the engine logger with console and optional file handlers.
    Component loggers ("SignalEngine.Gaps", "SignalEngine.Scanner", ...) propagate to it.

    log_level may be a level number or a name such as "DEBUG".
    """
    if isinstance(log_level, str):
        log_level = logging.getLevelName(log_level.upper())
        if not isinstance(log_level, int):
            log_level = logging.INFO

    logger = logging.getLogger(name)
    logger.setLevel(log_level)

    if quiet_libraries:
        for library in NOISY_LIBRARIES:
            logging.getLogger(library).setLevel(logging.WARNING)

    # Handlers are attached once per process
    if logger.handlers:
        return logger

    formatter = logging.Formatter(
        fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger

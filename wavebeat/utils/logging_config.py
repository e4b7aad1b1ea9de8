import logging
import os

APP_LOGGER = 'wavebeat'


def _has_file_handler(logger, log_file):
    path = os.path.abspath(log_file)
    return any(isinstance(h, logging.FileHandler) and h.baseFilename == path for h in logger.handlers)


def setup_logging(debug=False, log_file=None):
    """
    Configure logging for the application.

    Args:
        debug: If True, set log level to DEBUG, otherwise INFO
        log_file: Optional path of a log file written alongside the console

    Returns:
        The configured application logger
    """
    # Set root logger to a high level to suppress most messages
    logging.getLogger().setLevel(logging.WARNING)

    # Create our app logger
    app_logger = logging.getLogger(APP_LOGGER)
    level = logging.DEBUG if debug else logging.INFO
    app_logger.setLevel(level)

    formatter = logging.Formatter('%(asctime)s - %(levelname)s - %(message)s')

    # Repeated calls only adjust the level and attach new log files
    if not app_logger.handlers:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        app_logger.addHandler(console_handler)

    if log_file and not _has_file_handler(app_logger, log_file):
        file_handler = logging.FileHandler(log_file, mode='w')
        file_handler.setFormatter(formatter)
        app_logger.addHandler(file_handler)

    # Explicitly silence noisy libraries
    for noisy_logger in ['numba', 'audioread', 'matplotlib']:
        logging.getLogger(noisy_logger).setLevel(logging.WARNING)

    return app_logger

import logging
import colorlog


def setup_logging(level=None):
    """Configures the logging system with colored output."""
    if level is None:
        from voice_agent.config.environment import config
        level = config.LOG_LEVEL

    handler = colorlog.StreamHandler()
    handler.setFormatter(colorlog.ColoredFormatter(
        '%(log_color)s%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%H:%M:%S',
        log_colors={
            'DEBUG': 'cyan',
            'INFO': 'green',
            'WARNING': 'yellow',
            'ERROR': 'red',
            'CRITICAL': 'red,bg_white',
        }
    ))

    logger = colorlog.getLogger()

    # Clear existing handlers so repeated setup does not duplicate output
    logger.handlers.clear()

    logger.addHandler(handler)
    logger.setLevel(level)

    # Webhook sink traffic is noisy at INFO
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)

    return logger

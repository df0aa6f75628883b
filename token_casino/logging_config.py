import logging

LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"


def _is_console_handler(handler: logging.Handler) -> bool:
    return (
        type(handler) is logging.StreamHandler
        and handler.formatter is not None
        and handler.formatter._fmt == LOG_FORMAT  # pyright: ignore[reportPrivateUsage]
    )


def setup_logging(level: str = "INFO") -> logging.Logger:
    """
    Configure the package logger with a single console handler.

    Safe to call more than once; later calls only adjust the level. Handlers
    installed by others (test runners, log shippers) are left alone.
    """
    logger = logging.getLogger("token_casino")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    if not any(_is_console_handler(h) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
        logger.propagate = False
    logger.info("Logging initialised at %s", logging.getLevelName(logger.level))
    return logger

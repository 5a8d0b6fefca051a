import logging

from rich.logging import RichHandler

import config


def get_logger(name=None) -> logging.Logger:
    """
    Returns a named logger printing through a RichHandler.
    Handlers are attached only on the first call for a given name.
    """
    if name is None:
        name = "ecommerce"
    logger = logging.getLogger(name)
    log_level = logging.DEBUG if config.DEBUG else logging.INFO
    logger.setLevel(log_level)

    if not logger.handlers:
        handler = RichHandler(
            show_time=True,
            show_level=True,
            show_path=False,
            rich_tracebacks=True,
            log_time_format="[%X]",
        )
        handler.setFormatter(logging.Formatter("[%(name)s]  %(message)s"))
        handler.setLevel(log_level)
        logger.addHandler(handler)
        logger.propagate = False

    return logger

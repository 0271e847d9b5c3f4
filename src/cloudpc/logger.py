import logging

from rich.logging import RichHandler


def setup_logger(name: str = "cloudpc", level: int = logging.ERROR) -> logging.Logger:
    """Returns the named logger, attaching a RichHandler the first time."""
    logger = logging.getLogger(name)
    logger.setLevel(level)

    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        handler = RichHandler(rich_tracebacks=True, markup=True, show_path=False)
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)

    return logger


def set_verbosity(verbose: bool = False, debug: bool = False) -> None:
    """Lowers the shared logger level for --verbose / --debug."""
    if debug:
        logger.setLevel(logging.DEBUG)
    elif verbose:
        logger.setLevel(logging.INFO)


# quiet unless asked; the CLI raises the level with --verbose/--debug
logger = setup_logger()

import sys
from loguru import logger


def setup_logging(level="INFO", show_time=True, sink=None):
    """Configure loguru for fvflow.

    Parameters
    ----------
    level : str
        Logging level (DEBUG, INFO, SUCCESS, WARNING, ERROR, CRITICAL)
    show_time : bool
        Whether to show timestamps in the output.
    sink : file-like or path, optional
        Additional sink (e.g. a log file in the case directory).
    """
    logger.remove()

    if show_time:
        log_format = (
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
        )
    else:
        log_format = (
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
        )

    logger.add(sys.stderr, format=log_format, level=level, colorize=True)
    if sink is not None:
        logger.add(sink, format=log_format, level=level, colorize=False)

    return logger

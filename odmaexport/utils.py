from pathlib import Path
from typing import Dict

from loguru import logger
from rich import print as rprint

LOG_FILE_NAME = "odma_xml_export.log"

# Verbose setting -> minimum console level
VERBOSITY_LEVELS: Dict[int, str] = {
    0: "WARNING",
    1: "INFO",
    2: "DEBUG",
}


def console_level(verbose: int) -> str:
    """Map the 0/1/2 verbosity setting onto a loguru level name."""
    if verbose <= 0:
        return VERBOSITY_LEVELS[0]
    return VERBOSITY_LEVELS.get(verbose, VERBOSITY_LEVELS[2])


def setup_logging(verbose: int = 1, log_file: Path = Path(LOG_FILE_NAME)):
    """
    Configure loguru sinks for an export run.

    - Log file with everything down to DEBUG, rotated and compressed
    - Console output through rich, level depends on the verbose setting
    """
    logger.remove()

    try:
        logger.add(
            Path(log_file).resolve(),
            level="DEBUG",
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
            enqueue=True,
            backtrace=True,
            diagnose=False,
            rotation="10 MB",
            retention="3 days",
            compression="gz",
            mode="w",
        )

        logger.add(
            lambda msg: rprint(msg, end=""),
            level=console_level(verbose),
            format="{time:HH:mm:ss} | {level: <8} | {message}",
            colorize=False,
        )

        logger.debug(
            f"Logging initialized (console: {console_level(verbose)}+, file: DEBUG+)"
        )
    except Exception as e:
        logger.error(f"Failed to configure logging: {e}")

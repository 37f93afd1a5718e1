import logging
import sys

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d - %(message)s"


def setup_logging(level=logging.INFO):
    """Send defect_bridge logs to stderr, keeping stdout free for JSON output."""
    logger = logging.getLogger("defect_bridge")

    # Repeated CLI invocations in one process must not stack handlers.
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    logger.addHandler(handler)
    logger.setLevel(level)
    return logger

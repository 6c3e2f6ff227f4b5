import logging
import sys

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(name)s - %(message)s'

# Libraries that log too much on DEBUG
QUIET_LOGGERS = ["rasterio", "PIL", "trimesh"]


def setup_logging(debug: bool = False) -> None:
    """
    Configures the root logger for command line usage
    :param debug: log DEBUG messages of georender if True, INFO otherwise
    :return: None
    """
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    logging.getLogger(__name__).debug("Running in debug mode")

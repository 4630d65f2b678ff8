import logging

import pytest


@pytest.fixture(autouse=True)
def reset_labconf_logger():
    """setup_logging() binds handlers to whatever stderr a test had."""
    logger = logging.getLogger("LabConf")
    level = logger.level
    yield
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(level)

import logging

import pytest


@pytest.fixture(autouse=True)
def reset_audit_logger(caplog):
    caplog.set_level(logging.INFO)
    yield
    logger = logging.getLogger("datepurge")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)

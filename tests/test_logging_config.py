# Standard Library
import logging

# Third Party
import pytest

# Local
from springnet.logging_config import setup_logging


def test_level_by_name_and_file(tmp_path):
    log_file = tmp_path / "run.log"
    setup_logging(level="debug", log_file=str(log_file))
    logger = logging.getLogger("springnet")
    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 2
    assert logging.getLogger("h5py").level == logging.WARNING
    logging.getLogger("springnet.tests").debug("hello from the tests")
    for handler in logger.handlers:
        handler.flush()
    assert "hello from the tests" in log_file.read_text(encoding="utf-8")


def test_repeated_setup_does_not_stack_handlers():
    setup_logging(level=logging.INFO)
    setup_logging(level=logging.WARNING)
    logger = logging.getLogger("springnet")
    assert len(logger.handlers) == 1
    assert logger.level == logging.WARNING


def test_unknown_level_name():
    with pytest.raises(ValueError):
        setup_logging(level="chatty")

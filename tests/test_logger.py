import logging

from signal_engine.utils.logger import setup_logger


def test_component_loggers_reach_the_log_file(tmp_path):
    log_file = tmp_path / "logs" / "scan.log"
    logger = setup_logger("SignalEngineTest", log_level="debug", log_file=str(log_file))
    try:
        assert logger.level == logging.DEBUG
        logging.getLogger("SignalEngineTest.Gaps").warning("gaps skipped")
        for handler in logger.handlers:
            handler.flush()
        assert "SignalEngineTest.Gaps - WARNING - gaps skipped" in log_file.read_text()
    finally:
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)


def test_handlers_are_added_once():
    logger = setup_logger("SignalEngineOnce")
    try:
        assert setup_logger("SignalEngineOnce") is logger
        assert len(logger.handlers) == 1
    finally:
        for handler in list(logger.handlers):
            logger.removeHandler(handler)


def test_unknown_level_name_falls_back_to_info():
    logger = setup_logger("SignalEngineLevel", log_level="chatty", quiet_libraries=False)
    try:
        assert logger.level == logging.INFO
    finally:
        for handler in list(logger.handlers):
            logger.removeHandler(handler)

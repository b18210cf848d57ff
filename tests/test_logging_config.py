import logging

import pytest

from src.utils.logging_config import MODULE_TO_CATEGORY, LoggerCategory, LoggingManager


@pytest.fixture(autouse=True)
def restore_logger_levels():
    yield
    for module_name in MODULE_TO_CATEGORY:
        logging.getLogger(module_name).setLevel(logging.NOTSET)


def test_defaults_without_database(tmp_path):
    manager = LoggingManager(log_dir=tmp_path)
    assert manager.get_category_level(LoggerCategory.DATABASE) == logging.WARNING
    assert manager.get_category_level(LoggerCategory.PLAYBACK) == logging.INFO
    assert manager.get_category_level("unknown") == logging.INFO


def test_set_category_level_persists_and_applies(db, tmp_path):
    manager = LoggingManager(log_dir=tmp_path, db_manager=db)
    manager.set_category_level(LoggerCategory.PLAYBACK, logging.DEBUG)

    assert db.get_config("log_level_playback") == "DEBUG"
    assert logging.getLogger("src.core.sequencer").level == logging.DEBUG
    assert logging.getLogger("src.ui.video").level == logging.DEBUG

    reloaded = LoggingManager(log_dir=tmp_path, db_manager=db)
    assert reloaded.get_category_level(LoggerCategory.PLAYBACK) == logging.DEBUG


def test_attach_database_reloads_levels(db, tmp_path):
    db.set_config("log_level_network", "error")
    manager = LoggingManager(log_dir=tmp_path)
    manager.attach_database(db)
    assert manager.get_category_level(LoggerCategory.NETWORK) == logging.ERROR
    assert logging.getLogger("src.core.api.firebase").level == logging.ERROR


def test_unknown_level_name_falls_back(db, tmp_path):
    db.set_config("log_level_ui", "LOUD")
    manager = LoggingManager(log_dir=tmp_path, db_manager=db)
    assert manager.get_category_level(LoggerCategory.UI) == logging.WARNING

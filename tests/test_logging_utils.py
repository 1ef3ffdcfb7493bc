from __future__ import annotations

import logging

from shiurbank.logging_utils import (
    LOG_FILE_NAME,
    build_handlers,
    configure_logging,
    get_log_file_path,
)


def test_log_file_lives_in_storage_root(tmp_path) -> None:
    assert get_log_file_path(tmp_path) == tmp_path / LOG_FILE_NAME


def test_build_handlers_creates_file_and_stream_handlers(tmp_path) -> None:
    handlers = build_handlers(tmp_path / "storage")
    try:
        assert [type(handler) for handler in handlers] == [
            logging.FileHandler,
            logging.StreamHandler,
        ]
        assert (tmp_path / "storage").is_dir()
        assert handlers[0].baseFilename.endswith(LOG_FILE_NAME)
    finally:
        for handler in handlers:
            handler.close()


def test_configure_logging_replaces_previous_handlers(tmp_path) -> None:
    root = logging.getLogger()
    original_level = root.level
    first = logging.StreamHandler()
    second = logging.StreamHandler()
    try:
        configure_logging(handlers=[first])
        configure_logging(logging.DEBUG, handlers=[second])

        assert first not in root.handlers
        assert second in root.handlers
        assert root.level == logging.DEBUG
    finally:
        root.removeHandler(second)
        root.setLevel(original_level)

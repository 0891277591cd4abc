import logging

from scribe.config import get_settings
from scribe.logging_setup import configure_logging


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("CHUNK_SIZE_CHARS", "1234")
    monkeypatch.setenv("SKIPPABLE_WORDS", "ehm, uh ,,")
    monkeypatch.setenv("CHECKPOINT_ENABLED", "false")

    settings = get_settings()

    assert settings.CHUNK_SIZE_CHARS == 1234
    assert settings.skippable_words() == ["ehm", "uh"]
    assert settings.CHECKPOINT_ENABLED is False
    assert settings.TARGET_SAMPLE_RATE == 16000


def test_configure_logging_writes_file(tmp_path):
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    log_file = tmp_path / "logs" / "scribe.log"
    configure_logging("DEBUG", str(log_file))
    try:
        logging.getLogger("scribe.test").debug("hello %s", "file")
        for handler in root.handlers:
            handler.flush()
        assert "hello file" in log_file.read_text()
    finally:
        for handler in root.handlers[:]:
            root.removeHandler(handler)
            handler.close()
        for handler in saved_handlers:
            root.addHandler(handler)
        root.setLevel(saved_level)

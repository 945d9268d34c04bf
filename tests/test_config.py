import json

from handwriting_ocr.config import DEFAULT_OCR_PROMPT, Config


def test_singleton():
    assert Config() is Config()


def test_defaults_snapshot():
    settings = Config().snapshot()
    assert settings.api_key == ""
    assert not settings.has_api_key
    assert settings.model_name == "gemini-2.5-flash"
    assert settings.ocr_prompt == DEFAULT_OCR_PROMPT
    assert settings.page_separator == "---"
    assert settings.show_page_numbers is True
    assert settings.max_image_dimension == 4096
    assert settings.jpeg_quality == 85


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("HWOCR_API_KEY", "env-key")
    monkeypatch.setenv("HWOCR_MODEL_NAME", "gemini-2.5-pro")
    settings = Config().snapshot()
    assert settings.api_key == "env-key"
    assert settings.model_name == "gemini-2.5-pro"


def test_snapshot_is_detached_from_later_edits():
    config = Config()
    config.API_KEY = "first"
    settings = config.snapshot()
    config.API_KEY = "second"
    config.PAGE_SEPARATOR = "==="
    assert settings.api_key == "first"
    assert settings.page_separator == "---"


def test_setters_normalize_values():
    config = Config()
    config.API_BASE_URL = "https://example.test/v1beta/"
    config.API_KEY = "  padded  "
    assert config.API_BASE_URL == "https://example.test/v1beta"
    assert config.API_KEY == "padded"


def test_save_and_load_round_trip(monkeypatch):
    config = Config()
    config.API_KEY = "saved-key"
    config.MODEL_NAME = "gemini-2.5-flash-lite"
    config.SHOW_PAGE_NUMBERS = False
    config.save()

    data = json.loads(Config.config_file_path().read_text())
    assert data["API_KEY"] == "saved-key"
    assert data["SHOW_PAGE_NUMBERS"] is False

    monkeypatch.setattr(Config, "_instance", None)
    reloaded = Config()
    assert reloaded is not config
    reloaded.load()
    assert reloaded.API_KEY == "saved-key"
    assert reloaded.MODEL_NAME == "gemini-2.5-flash-lite"
    assert reloaded.snapshot().show_page_numbers is False


def test_load_ignores_unknown_and_private_keys():
    Config.config_file_path().write_text(
        json.dumps({"PAGE_SEPARATOR": "***", "NOT_A_SETTING": 1, "_api_key": "sneaky"})
    )
    config = Config()
    config.load()
    assert config.PAGE_SEPARATOR == "***"
    assert not hasattr(config, "NOT_A_SETTING")
    assert config.API_KEY == ""


def test_load_survives_a_corrupt_file():
    Config.config_file_path().write_text("{not json")
    config = Config()
    config.load()
    assert config.PAGE_SEPARATOR == "---"

# tests/test_config.py
import pytest
from pathlib import Path

import drivescope
from drivescope.config import Settings, get_settings


@pytest.fixture
def base_settings_data():
    """Provides a base dictionary for valid settings."""
    return {
        "GOOGLE_CLIENT_ID": "test_client_id",
        "GOOGLE_CLIENT_SECRET": "test_client_secret",
        "_env_file": None,
    }


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for key in ["DRIVE_FOLDER_NAME", "MAX_CONCURRENT_FETCHES", "TOKEN_FILE", "STRICT_ROOT_RESOLUTION", "BASE_DIR"]:
        monkeypatch.delenv(key, raising=False)


def test_settings_defaults(base_settings_data):
    settings = Settings(**base_settings_data)

    assert settings.DRIVE_FOLDER_NAME == "Photo_Storage"
    assert settings.ANCESTRY_HOP_LIMIT == 30
    assert settings.DEFAULT_LIST_DEPTH == 4
    assert settings.LIST_PAGE_SIZE == 1000
    assert settings.MAX_CONCURRENT_FETCHES == 1
    assert settings.STRICT_ROOT_RESOLUTION is True
    assert settings.DEDUPLICATE_LISTING is True


def test_settings_read_from_environment(monkeypatch, base_settings_data):
    monkeypatch.setenv("DRIVE_FOLDER_NAME", "Sandbox")
    monkeypatch.setenv("STRICT_ROOT_RESOLUTION", "false")

    settings = Settings(**base_settings_data)

    assert settings.DRIVE_FOLDER_NAME == "Sandbox"
    assert settings.STRICT_ROOT_RESOLUTION is False


@pytest.mark.parametrize("key", ["GOOGLE_CLIENT_ID", "GOOGLE_CLIENT_SECRET", "DRIVE_FOLDER_NAME"])
def test_blank_required_value_raises_error(base_settings_data, key):
    data = {**base_settings_data, key: "   "}

    with pytest.raises(ValueError, match=key):
        Settings(**data)


def test_non_positive_limit_raises_error(base_settings_data):
    with pytest.raises(ValueError, match="MAX_CONCURRENT_FETCHES"):
        Settings(**base_settings_data, MAX_CONCURRENT_FETCHES=0)


def test_token_path_is_relative_to_base_dir(base_settings_data):
    settings = Settings(**base_settings_data, TOKEN_FILE="tokens.json")

    assert settings.TOKEN_PATH == settings.BASE_DIR / "tokens.json"


def test_relative_paths_resolve_against_working_directory(monkeypatch, base_settings_data, tmp_path):
    """Tokens and logs are kept where the command runs, never inside the installed package."""
    monkeypatch.chdir(tmp_path)

    settings = Settings(**base_settings_data, TOKEN_FILE="tokens.json")

    assert settings.TOKEN_PATH == tmp_path / "tokens.json"
    assert settings.LOG_FILE == tmp_path / "app.log"
    package_dir = Path(drivescope.__file__).resolve().parent
    assert settings.TOKEN_PATH.parent != package_dir


def test_absolute_token_path_is_kept(base_settings_data, tmp_path):
    token_file = tmp_path / "tokens.json"

    settings = Settings(**base_settings_data, TOKEN_FILE=str(token_file))

    assert settings.TOKEN_PATH == Path(token_file)


def test_get_settings_is_cached(mock_settings):
    assert get_settings() is get_settings() is mock_settings

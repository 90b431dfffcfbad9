"""Tests for layered configuration loading."""

import pytest

from pagewise.configuration import (
    PagewiseConfig,
    _cached_settings,
    discover_config_files,
    get_settings,
    load_settings,
)
from pagewise.errors import BackendConfigurationError
from pagewise.locator import LocatorThresholds


@pytest.fixture
def home(tmp_path):
    path = tmp_path / "home"
    path.mkdir()
    return path


@pytest.fixture
def app_dir(tmp_path):
    path = tmp_path / "app"
    path.mkdir()
    return path


def _write_home_config(home, text):
    config_dir = home / ".config" / "pagewise"
    config_dir.mkdir(parents=True)
    (config_dir / "config.yaml").write_text(text, encoding="utf-8")


class TestLoadSettings:
    """Files, .env, environment and overrides are merged in order."""

    def test_defaults(self, app_dir, home):
        settings = load_settings(app_dir, environ={"PAGEWISE_PROVIDER": "echo"}, home=home)

        assert settings.PAGEWISE_PROVIDER == "echo"
        assert settings.PAGEWISE_MAX_CHUNK_CHARS == 1000
        assert settings.PAGEWISE_CACHE_SIZE == 100
        assert settings.locator_thresholds() == LocatorThresholds()

    def test_layers_are_merged(self, app_dir, home):
        _write_home_config(home, "PAGEWISE_TARGET_LANGUAGE: French\nPAGEWISE_TRANSLATION_LEVEL: plain\n")
        (app_dir / "config.yaml").write_text("pagewise_translation_level: simple\n", encoding="utf-8")
        (app_dir / ".env").write_text("PAGEWISE_MAX_CHUNK_CHARS=500\n", encoding="utf-8")

        settings = load_settings(app_dir, environ={"PAGEWISE_PROVIDER": "mock"}, home=home)

        assert settings.PAGEWISE_TARGET_LANGUAGE == "French"
        assert settings.PAGEWISE_TRANSLATION_LEVEL == "simple"
        assert settings.PAGEWISE_MAX_CHUNK_CHARS == 500
        assert settings.PAGEWISE_PROVIDER == "echo"

    def test_environment_beats_dotenv(self, app_dir, home):
        (app_dir / ".env").write_text(
            "PAGEWISE_PROVIDER=echo\nPAGEWISE_TARGET_LANGUAGE=Spanish\n", encoding="utf-8"
        )

        settings = load_settings(
            app_dir, environ={"PAGEWISE_TARGET_LANGUAGE": "Italian"}, home=home
        )

        assert settings.PAGEWISE_TARGET_LANGUAGE == "Italian"

    def test_overrides_win_and_none_is_ignored(self, app_dir, home):
        settings = load_settings(
            app_dir,
            environ={"PAGEWISE_PROVIDER": "echo", "PAGEWISE_TARGET_LANGUAGE": "Dutch"},
            home=home,
            overrides={"PAGEWISE_COMPARE_VIEW": True, "PAGEWISE_TARGET_LANGUAGE": None},
        )

        assert settings.PAGEWISE_COMPARE_VIEW is True
        assert settings.PAGEWISE_TARGET_LANGUAGE == "Dutch"

    def test_unrelated_environment_is_ignored(self, app_dir, home):
        settings = load_settings(
            app_dir, environ={"PAGEWISE_PROVIDER": "echo", "PATH": "/usr/bin"}, home=home
        )

        assert isinstance(settings, PagewiseConfig)

    def test_discover_config_files_order(self, app_dir, home):
        _write_home_config(home, "{}\n")
        (app_dir / "config.yaml").write_text("{}\n", encoding="utf-8")

        paths = discover_config_files(app_dir, home)

        assert paths == [home / ".config" / "pagewise" / "config.yaml", app_dir / "config.yaml"]


class TestValidation:
    """Invalid settings surface as configuration errors."""

    def test_openai_requires_key(self, app_dir, home):
        with pytest.raises(BackendConfigurationError) as excinfo:
            load_settings(app_dir, environ={}, home=home)

        assert "PAGEWISE_API_KEY" in str(excinfo.value)

    def test_missing_key_names_where_to_get_one(self, app_dir, home):
        with pytest.raises(BackendConfigurationError) as excinfo:
            load_settings(app_dir, environ={"PAGEWISE_PROVIDER": "gpt"}, home=home)

        assert "'openai'" in str(excinfo.value)
        assert "platform.openai.com" in str(excinfo.value)

    def test_local_backend_needs_no_key(self, app_dir, home):
        settings = load_settings(app_dir, environ={"PAGEWISE_PROVIDER": "local"}, home=home)

        assert settings.PAGEWISE_PROVIDER == "local"
        assert settings.PAGEWISE_API_KEY is None

    def test_out_of_range_value(self, app_dir, home):
        with pytest.raises(BackendConfigurationError) as excinfo:
            load_settings(
                app_dir,
                environ={"PAGEWISE_PROVIDER": "echo", "PAGEWISE_MAX_CHUNK_CHARS": "10"},
                home=home,
            )

        assert "PAGEWISE_MAX_CHUNK_CHARS" in str(excinfo.value)

    def test_unknown_provider(self, app_dir, home):
        with pytest.raises(BackendConfigurationError):
            load_settings(app_dir, environ={"PAGEWISE_PROVIDER": "babelfish"}, home=home)

    def test_threshold_ordering(self, app_dir, home):
        with pytest.raises(BackendConfigurationError) as excinfo:
            load_settings(
                app_dir,
                environ={"PAGEWISE_PROVIDER": "echo", "PAGEWISE_NESTED_MIN_WORDS": "20"},
                home=home,
            )

        assert "PAGEWISE_NESTED_MIN_WORDS" in str(excinfo.value)

    def test_invalid_yaml(self, app_dir, home):
        (app_dir / "config.yaml").write_text("PAGEWISE_PROVIDER: [unclosed\n", encoding="utf-8")

        with pytest.raises(BackendConfigurationError):
            load_settings(app_dir, environ={}, home=home)

    def test_yaml_must_be_a_mapping(self, app_dir, home):
        (app_dir / "config.yaml").write_text("- just\n- a list\n", encoding="utf-8")

        with pytest.raises(BackendConfigurationError):
            load_settings(app_dir, environ={}, home=home)


class TestDerivedSettings:
    """Settings map onto backend and locator settings."""

    def test_backend_config(self, app_dir, home):
        settings = load_settings(
            app_dir,
            environ={
                "PAGEWISE_PROVIDER": "local",
                "PAGEWISE_MODEL": "mistral",
                "PAGEWISE_API_ENDPOINT": "http://127.0.0.1:8080/v1",
                "PAGEWISE_PROVIDER_DEBUG": "true",
            },
            home=home,
        )

        config = settings.backend_config()

        assert config.provider == "local"
        assert config.model == "mistral"
        assert config.api_endpoint == "http://127.0.0.1:8080/v1"
        assert config.debug is True
        assert config.translation_level == "easy"


class TestGetSettings:
    """Settings are loaded once per working directory."""

    def test_cached_per_directory(self, app_dir, home, monkeypatch):
        monkeypatch.setenv("HOME", str(home))
        monkeypatch.setenv("PAGEWISE_PROVIDER", "echo")
        _cached_settings.cache_clear()

        first = get_settings(app_dir)

        assert get_settings(app_dir) is first
        _cached_settings.cache_clear()

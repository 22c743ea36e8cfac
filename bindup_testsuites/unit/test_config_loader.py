from pathlib import Path

import pytest
import yaml

from bindup_testsuites.common.config_loader import ConfigLoader, ConfigurationError
from bindup_testsuites.ui_testing.framework.settings import EngineSettings


@pytest.fixture(autouse=True)
def fresh_loader(monkeypatch):
    monkeypatch.delenv("ENVIRONMENT", raising=False)
    monkeypatch.delenv("ENV", raising=False)
    ConfigLoader.reset()
    yield
    ConfigLoader.reset()


def write_config(path, data):
    path.write_text(yaml.dump(data, allow_unicode=True), encoding="utf-8")
    return path


def test_env_override_and_defaults(monkeypatch, tmp_path):
    config_path = write_config(
        tmp_path / "config.yaml",
        {"engine": {"retry": {"max_attempts": 3, "delay_seconds": 2.0}}},
    )

    loader = ConfigLoader(config_path=config_path)
    assert loader.get("engine.retry.max_attempts") == 3
    assert loader.get("engine.popup.interval_ms", 500) == 500

    ConfigLoader.reset()
    monkeypatch.setenv("ENGINE_RETRY_MAX_ATTEMPTS", "5")
    monkeypatch.setenv("ENGINE_RETRY_DELAY_SECONDS", "0.5")
    loader = ConfigLoader(config_path=config_path)
    assert loader.get("engine.retry.max_attempts", 3) == 5
    assert loader.get("engine.retry.delay_seconds", 2.0) == 0.5


def test_environment_overlay_is_merged(monkeypatch, tmp_path):
    config_path = write_config(
        tmp_path / "config.yaml",
        {"engine": {"popup": {"interval_ms": 500, "check_timeout_ms": 100}}},
    )
    write_config(tmp_path / "staging.yaml", {"engine": {"popup": {"interval_ms": 250}}})
    monkeypatch.setenv("ENVIRONMENT", "staging")

    loader = ConfigLoader(config_path=config_path)

    assert loader.get("engine.popup.interval_ms") == 250
    assert loader.get("engine.popup.check_timeout_ms") == 100


def test_reload_updates_values(tmp_path):
    config_path = write_config(tmp_path / "config.yaml", {"engine": {"resolver": {"text_timeout_ms": 3000}}})

    loader = ConfigLoader(config_path=config_path)
    assert loader.get("engine.resolver.text_timeout_ms") == 3000

    write_config(config_path, {"engine": {"resolver": {"text_timeout_ms": 1500}}})
    loader.reload()
    assert loader.get("engine.resolver.text_timeout_ms") == 1500


def test_invalid_yaml_raises(tmp_path):
    config_path = tmp_path / "config.yaml"
    config_path.write_text("engine: [unclosed", encoding="utf-8")

    with pytest.raises(ConfigurationError):
        ConfigLoader(config_path=config_path)


def test_missing_file_uses_defaults(tmp_path):
    loader = ConfigLoader(config_path=tmp_path / "absent.yaml")

    assert loader.get("engine.retry.max_attempts", 3) == 3
    assert loader.get_section("engine") == {}


def test_engine_settings_load(monkeypatch, tmp_path):
    config_path = write_config(
        tmp_path / "config.yaml",
        {
            "engine": {
                "resolver": {"reveal_timeout_ms": 1000},
                "retry": {"max_attempts": 4},
                "screenshots": {"enabled": True, "directory": "out/shots"},
            }
        },
    )
    monkeypatch.setenv("ENGINE_SCREENSHOTS_ENABLED", "false")

    settings = EngineSettings.load(ConfigLoader(config_path=config_path))

    assert settings.reveal_timeout_ms == 1000
    assert settings.retry_max_attempts == 4
    assert settings.text_timeout_ms == 3000
    assert settings.popup_interval_ms == 500
    assert settings.screenshots_enabled is False
    assert settings.screenshot_dir == Path("out/shots")


def test_packaged_config_matches_engine_defaults():
    settings = EngineSettings.load()

    assert settings.popup_interval_ms == 500
    assert settings.popup_check_timeout_ms == 100
    assert settings.retry_max_attempts == 3
    assert settings.retry_delay_seconds == 2.0


def test_env_number_of_wrong_type_names_the_variable(monkeypatch, tmp_path):
    config_path = write_config(
        tmp_path / "config.yaml",
        {"engine": {"resolver": {"reveal_timeout_ms": 2000}}},
    )
    monkeypatch.setenv("ENGINE_RESOLVER_REVEAL_TIMEOUT_MS", "2.5")
    loader = ConfigLoader(config_path=config_path)

    with pytest.raises(ConfigurationError, match="ENGINE_RESOLVER_REVEAL_TIMEOUT_MS='2.5'"):
        loader.get("engine.resolver.reveal_timeout_ms", 2000)
    with pytest.raises(ConfigurationError, match="not a valid int"):
        loader.get("engine.resolver.reveal_timeout_ms")
    with pytest.raises(ConfigurationError):
        EngineSettings.load(loader)


def test_env_number_typed_from_yaml_without_default(monkeypatch, tmp_path):
    config_path = write_config(tmp_path / "config.yaml", {"engine": {"popup": {"interval_ms": 500}}})
    monkeypatch.setenv("ENGINE_POPUP_INTERVAL_MS", "250")

    assert ConfigLoader(config_path=config_path).get("engine.popup.interval_ms") == 250

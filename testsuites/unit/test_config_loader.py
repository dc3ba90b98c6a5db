import pytest
import yaml

from testing_api.config_loader import ConfigLoader, ConfigurationError


def write_config(tmp_path, data):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(yaml.dump(data), encoding="utf-8")
    return config_path


def test_env_override_and_defaults(monkeypatch, tmp_path):
    config_path = write_config(
        tmp_path, {"api": {"base_url": "https://testing.example.com/", "timeout": 10}}
    )

    ConfigLoader.reset()
    loader = ConfigLoader(config_path=config_path)
    assert loader.get("api.base_url") == "https://testing.example.com/"
    assert loader.get("retry.max_retries", 3) == 3

    ConfigLoader.reset()
    monkeypatch.setenv("API_BASE_URL", "https://env.example.com/")
    monkeypatch.setenv("RETRY_MAX_RETRIES", "7")
    monkeypatch.setenv("RETRY_BACKOFF", "0.1")
    loader = ConfigLoader(config_path=config_path)
    assert loader.get("api.base_url") == "https://env.example.com/"
    assert loader.get("retry.max_retries", 3) == 7
    assert loader.get("retry.backoff", 0.5) == 0.1


def test_env_override_uses_the_key_type_not_the_default(monkeypatch, tmp_path):
    monkeypatch.setenv("API_TIMEOUT", "2.5")
    loader = ConfigLoader(config_path=tmp_path / "absent.yaml")

    assert loader.get("api.timeout", 30) == 2.5


@pytest.mark.parametrize(
    "key, env_key, value",
    [
        ("api.timeout", "API_TIMEOUT", "abc"),
        ("api.timeout", "API_TIMEOUT", "nan"),
        ("retry.max_retries", "RETRY_MAX_RETRIES", "3.5"),
        ("retry.max_wait", "RETRY_MAX_WAIT", "-1"),
    ],
)
def test_invalid_env_override_raises_configuration_error(monkeypatch, tmp_path, key, env_key, value):
    monkeypatch.setenv(env_key, value)
    loader = ConfigLoader(config_path=tmp_path / "absent.yaml")

    with pytest.raises(ConfigurationError):
        loader.get(key, 1)


def test_unknown_key_env_override_follows_default_type(monkeypatch, tmp_path):
    monkeypatch.setenv("FEATURE_ENABLED", "yes")
    monkeypatch.setenv("FEATURE_LIMIT", "12")
    loader = ConfigLoader(config_path=tmp_path / "absent.yaml")

    assert loader.get("feature.enabled", False) is True
    assert loader.get("feature.limit", 5) == 12
    assert loader.get("feature.name") is None


def test_missing_file_falls_back_to_defaults(tmp_path):
    loader = ConfigLoader(config_path=tmp_path / "absent.yaml")

    assert loader.get("api.timeout", 30) == 30


def test_invalid_yaml_raises_configuration_error(tmp_path):
    config_path = tmp_path / "config.yaml"
    config_path.write_text("api: [unclosed", encoding="utf-8")

    with pytest.raises(ConfigurationError):
        ConfigLoader(config_path=config_path)


def test_non_mapping_root_raises_configuration_error(tmp_path):
    config_path = tmp_path / "config.yaml"
    config_path.write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(ConfigurationError):
        ConfigLoader(config_path=config_path)


@pytest.mark.parametrize(
    "data, message",
    [
        ({"api": "https://testing.googleapis.com/"}, "section 'api' must be a mapping"),
        ({"api": {"timeout": "thirty"}}, "api.timeout"),
        ({"retry": {"max_retries": 2.5}}, "retry.max_retries"),
        ({"retry": {"max_retries": True}}, "retry.max_retries"),
        ({"retry": {"backoff": -0.5}}, "retry.backoff"),
        ({"auth": {"client_id": 1234}}, "auth.client_id"),
    ],
)
def test_invalid_sections_are_rejected_on_load(tmp_path, data, message):
    with pytest.raises(ConfigurationError, match=message):
        ConfigLoader(config_path=write_config(tmp_path, data))


def test_empty_values_and_unknown_sections_are_accepted(tmp_path, loguru_records):
    config_path = write_config(
        tmp_path,
        {"auth": {"access_token": None, "client_id": ""}, "reporting": {"enabled": True}},
    )

    loader = ConfigLoader(config_path=config_path)

    assert loader.get("auth.access_token") is None
    assert loader.get("auth.client_id") == ""
    assert any("reporting" in record["message"] for record in loguru_records)


def test_shipped_sample_config_is_valid(project_root):
    loader = ConfigLoader(config_path=project_root / "config" / "config.yaml")

    assert loader.get("api.base_url") == "https://testing.googleapis.com/"
    assert loader.get("retry.max_retries") == 3

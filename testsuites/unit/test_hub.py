import httpx
import pytest
import yaml

from testing_api import StaticTokenAuthenticator, Testing, TokenManager
from testing_api.config_loader import ConfigLoader, ConfigurationError
from testing_api.hub import DEFAULT_BASE_URL, DEFAULT_USER_AGENT


def test_defaults_and_setters_return_previous_value():
    with httpx.Client() as client:
        hub = Testing(client, StaticTokenAuthenticator("t"))

        assert hub.user_agent == DEFAULT_USER_AGENT
        assert hub.base_url == DEFAULT_BASE_URL == "https://testing.googleapis.com/"

        assert hub.set_user_agent("my-agent/2.0") == DEFAULT_USER_AGENT
        assert hub.user_agent == "my-agent/2.0"
        assert hub.set_base_url("http://localhost:8080") == DEFAULT_BASE_URL
        assert hub.base_url == "http://localhost:8080/"
        assert hub.set_root_url("http://localhost:8080/") == "https://testing.googleapis.com/"


def test_base_url_change_applies_to_calls(make_hub):
    hub = make_hub(lambda request: httpx.Response(200, json={}))
    hub.set_base_url("http://localhost:8080/testing")

    hub.test_environment_catalog().get("NETWORK_CONFIGURATION").doit()

    assert str(hub.sent[0].url) == (
        "http://localhost:8080/testing/v1/testEnvironmentCatalog/NETWORK_CONFIGURATION?alt=json"
    )


def test_from_config_builds_client_and_static_auth(tmp_path):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        yaml.dump(
            {
                "api": {"base_url": "http://localhost:9000/", "user_agent": "ci-agent", "timeout": 5},
                "auth": {"access_token": "static-token"},
            }
        ),
        encoding="utf-8",
    )

    with Testing.from_config(ConfigLoader(config_path=config_path)) as hub:
        assert hub.base_url == "http://localhost:9000/"
        assert hub.user_agent == "ci-agent"
        assert isinstance(hub.auth, StaticTokenAuthenticator)
        assert hub.client.timeout.read == 5.0

    assert hub.client.is_closed


def test_from_config_falls_back_to_token_manager(tmp_path):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        yaml.dump({"auth": {"cache_dir": str(tmp_path / "tokens")}}),
        encoding="utf-8",
    )

    with Testing.from_config(ConfigLoader(config_path=config_path)) as hub:
        assert isinstance(hub.auth, TokenManager)
        assert hub.base_url == DEFAULT_BASE_URL


def test_hub_does_not_close_a_client_it_was_given():
    client = httpx.Client()
    with Testing(client, StaticTokenAuthenticator("t")):
        pass

    assert not client.is_closed
    client.close()


def test_from_config_rejects_non_numeric_timeout_override(monkeypatch, tmp_path):
    monkeypatch.setenv("API_TIMEOUT", "abc")

    with pytest.raises(ConfigurationError, match="API_TIMEOUT"):
        Testing.from_config(ConfigLoader(config_path=tmp_path / "absent.yaml"))

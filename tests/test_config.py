"""Tests for environment configuration."""

from gatewayops.config import OpsConfig


def test_defaults():
    config = OpsConfig.from_env({})
    assert config.port == 8787
    assert config.sandbox_url == "http://127.0.0.1:2024"
    assert config.sandbox_container is None
    assert config.access_token is None
    assert config.cli_timeout_ms == 20000
    assert config.restart_grace_ms == 2000
    assert config.gateway_env == {}


def test_overrides():
    config = OpsConfig.from_env({
        "OPS_PORT": "9000",
        "SANDBOX_API_URL": "http://10.0.0.5:2024",
        "SANDBOX_CONTAINER": "sandbox-1",
        "OPS_ACCESS_TOKEN": "tok",
        "CLI_TIMEOUT_MS": "5000",
        "RESTART_GRACE_MS": "100",
        "OPENCLAW_GATEWAY_TOKEN": "gw",
        "UNRELATED": "ignored",
    })
    assert config.port == 9000
    assert config.sandbox_url == "http://10.0.0.5:2024"
    assert config.sandbox_container == "sandbox-1"
    assert config.access_token == "tok"
    assert config.cli_timeout_ms == 5000
    assert config.restart_grace_ms == 100
    assert config.gateway_env == {"OPENCLAW_GATEWAY_TOKEN": "gw"}


def test_empty_token_disables_access_check():
    assert OpsConfig.from_env({"OPS_ACCESS_TOKEN": ""}).access_token is None

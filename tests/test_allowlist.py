"""Tests for the config path allowlist."""

import pytest

from gatewayops.allowlist import ALLOWED_CONFIG_PATHS, is_allowed_config_path


class TestAllowlist:
    @pytest.mark.parametrize(
        "path",
        ["agents.defaults.model.primary", "gateway.auth.token", "gateway.port"],
    )
    def test_allows_known_paths(self, path):
        assert is_allowed_config_path(path)

    @pytest.mark.parametrize(
        "path",
        [
            "gateway.bind",
            "agents.defaults.model",
            "channels.discord.token",
            "gateway.port.sub",
            "gateway",
            "GATEWAY.PORT",
            " gateway.port",
            "gateway.port ",
            "gateway.*",
            "gateway.port; rm -rf /",
            "",
        ],
    )
    def test_rejects_everything_else(self, path):
        assert not is_allowed_config_path(path)

    def test_rejects_non_strings(self):
        assert not is_allowed_config_path(None)
        assert not is_allowed_config_path(["gateway.port"])

    def test_allowlist_is_fixed(self):
        assert len(ALLOWED_CONFIG_PATHS) == 3
        assert isinstance(ALLOWED_CONFIG_PATHS, frozenset)

"""Config paths that may be read or written through the command proxy."""

# Exact keys only. Paths are interpolated into a shell command, so nothing
# outside this set may reach the sandbox.
ALLOWED_CONFIG_PATHS = frozenset({
    "agents.defaults.model.primary",
    "gateway.auth.token",
    "gateway.port",
})


def is_allowed_config_path(path: object) -> bool:
    """Return True if ``path`` is literally one of the allowed config keys."""
    return isinstance(path, str) and path in ALLOWED_CONFIG_PATHS

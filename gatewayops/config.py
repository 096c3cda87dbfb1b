"""Environment configuration for the ops server."""

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

from gatewayops.command_proxy import CLI_TIMEOUT_MS
from gatewayops.gateway import DEFAULT_RESTART_GRACE_MS, build_gateway_env


@dataclass
class OpsConfig:
    host: str = "0.0.0.0"
    port: int = 8787
    sandbox_url: str = "http://127.0.0.1:2024"
    sandbox_container: Optional[str] = None  # Resolve sandbox_url through docker
    access_token: Optional[str] = None  # None disables the access check
    cli_timeout_ms: int = CLI_TIMEOUT_MS
    restart_grace_ms: int = DEFAULT_RESTART_GRACE_MS
    gateway_env: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "OpsConfig":
        env = os.environ if environ is None else environ
        return cls(
            host=env.get("OPS_HOST", "0.0.0.0"),
            port=int(env.get("OPS_PORT", "8787")),
            sandbox_url=env.get("SANDBOX_API_URL", "http://127.0.0.1:2024"),
            sandbox_container=env.get("SANDBOX_CONTAINER") or None,
            access_token=env.get("OPS_ACCESS_TOKEN") or None,
            cli_timeout_ms=int(env.get("CLI_TIMEOUT_MS", str(CLI_TIMEOUT_MS))),
            restart_grace_ms=int(
                env.get("RESTART_GRACE_MS", str(DEFAULT_RESTART_GRACE_MS))
            ),
            gateway_env=build_gateway_env(env),
        )

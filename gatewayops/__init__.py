# gatewayops - keep the sandboxed gateway alive
"""
gatewayops - Supervision and config proxy for a sandboxed gateway process.

Keeps one gateway process running inside a remote sandbox and exposes an
allowlist-gated HTTP API for inspecting, restarting and reconfiguring it.
"""

from gatewayops.allowlist import ALLOWED_CONFIG_PATHS, is_allowed_config_path
from gatewayops.command_proxy import run_config_command
from gatewayops.gateway import GatewaySupervisor, find_gateway_process
from gatewayops.models import CommandResult, GatewayState, Process, RestartAck
from gatewayops.sandbox_client import HttpSandbox, Sandbox

__all__ = [
    "ALLOWED_CONFIG_PATHS",
    "is_allowed_config_path",
    "run_config_command",
    "GatewaySupervisor",
    "find_gateway_process",
    "CommandResult",
    "GatewayState",
    "Process",
    "RestartAck",
    "HttpSandbox",
    "Sandbox",
]

__version__ = "0.1.0"

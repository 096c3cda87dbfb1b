"""Run one ``openclaw config`` CLI call against the running gateway."""

import logging
import shlex
from typing import Optional, Union

from gatewayops.allowlist import is_allowed_config_path
from gatewayops.errors import AuthorizationError, ValidationError
from gatewayops.gateway import (
    DEFAULT_POLL_INTERVAL,
    GATEWAY_CONTROL_URL,
    GatewaySupervisor,
    wait_for_process,
)
from gatewayops.models import CommandResult, ConfigCommand, ProcessStatus

logger = logging.getLogger(__name__)

# CLI calls can take 10-15 seconds: each one opens a fresh websocket to the gateway
CLI_TIMEOUT_MS = 20000


def build_config_command(
    kind: ConfigCommand, path: str, value: Optional[str] = None
) -> str:
    """Build the CLI command line. ``path`` must already be allowlisted."""
    if kind == ConfigCommand.SET:
        return (
            f"openclaw config set {path} {shlex.quote(value)} "
            f"--url {GATEWAY_CONTROL_URL}"
        )
    return f"openclaw config get {path} --url {GATEWAY_CONTROL_URL}"


def check_config_request(
    kind: ConfigCommand, path: Optional[str], value: Optional[str] = None
) -> None:
    """Validate a config request without touching the sandbox.

    Raises:
        ValidationError: ``path`` is missing, or ``value`` is missing for a set
        AuthorizationError: ``path`` is not in the allowlist
    """
    if kind == ConfigCommand.SET:
        if not path or value is None:
            raise ValidationError("Missing path or value parameter")
    elif not path:
        raise ValidationError("Missing path parameter")
    if not is_allowed_config_path(path):
        raise AuthorizationError("Config path not allowed")


async def run_config_command(
    supervisor: GatewaySupervisor,
    kind: Union[ConfigCommand, str],
    path: Optional[str],
    value: Optional[str] = None,
    timeout_ms: int = CLI_TIMEOUT_MS,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
) -> CommandResult:
    """Read or write one gateway config key through the CLI.

    The gateway is ensured first. The CLI process is awaited for at most
    ``timeout_ms``; on timeout it is left running and the result is
    reported with ``timed_out=True``. Output is returned verbatim.
    """
    kind = ConfigCommand(kind)
    check_config_request(kind, path, value)

    await supervisor.ensure()

    command = build_config_command(kind, path, value)
    sandbox = supervisor.sandbox
    process = await sandbox.start_process(command)
    logger.info(f"Started config {kind.value} for {path} as process {process.id}")

    process, timed_out = await wait_for_process(
        sandbox, process, timeout_ms, poll_interval=poll_interval
    )
    if timed_out:
        logger.warning(
            f"Config {kind.value} for {path} still {process.status} after "
            f"{timeout_ms}ms, leaving process {process.id} running"
        )

    if process.status == ProcessStatus.MISSING.value:
        # Nothing left to read logs from
        return CommandResult(
            success=False,
            exit_code=process.exit_code,
            stdout="",
            stderr="",
            status=process.status,
        )

    logs = await sandbox.get_logs(process.id)
    return CommandResult(
        success=not timed_out and process.exit_code == 0,
        exit_code=process.exit_code,
        stdout=logs.stdout,
        stderr=logs.stderr,
        status=process.status,
        timed_out=timed_out,
    )

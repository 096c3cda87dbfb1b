"""Discovery and lifecycle management of the gateway process.

The gateway is not stored anywhere: it is whichever active sandbox process
was launched with the gateway command. Ensure and restart are read-then-act
on the sandbox process table without any lock, so two concurrent callers
that both observe "no gateway" will both spawn one. Single-instance
discipline is best-effort.
"""

import asyncio
import logging
from dataclasses import replace
from typing import Mapping, Optional

from gatewayops.models import GatewayState, Process, ProcessStatus, RestartAck
from gatewayops.sandbox_client import Sandbox

logger = logging.getLogger(__name__)

GATEWAY_PORT = 18789
GATEWAY_CONTROL_URL = f"ws://localhost:{GATEWAY_PORT}"
GATEWAY_COMMAND = "/usr/local/bin/start-openclaw.sh"

# Any of these in a command line marks a gateway launch...
GATEWAY_SIGNATURES = ("start-openclaw.sh", "openclaw gateway")
# ...unless it is a CLI call talking to the gateway.
CLI_SUBCOMMANDS = ("openclaw config", "openclaw devices")

# Forwarded from the supervisor's environment into the gateway's
GATEWAY_ENV_KEYS = (
    "ANTHROPIC_API_KEY",
    "OPENAI_API_KEY",
    "OPENCLAW_GATEWAY_TOKEN",
    "OPENCLAW_DEFAULT_MODEL",
)

DEFAULT_RESTART_GRACE_MS = 2000
DEFAULT_POLL_INTERVAL = 0.5


def build_gateway_env(source: Mapping[str, str]) -> dict[str, str]:
    """Pick the variables the gateway needs out of ``source``."""
    return {key: source[key] for key in GATEWAY_ENV_KEYS if source.get(key)}


def is_gateway_command(command: str) -> bool:
    if any(sub in command for sub in CLI_SUBCOMMANDS):
        return False
    return any(sig in command for sig in GATEWAY_SIGNATURES)


async def find_gateway_process(sandbox: Sandbox) -> Optional[Process]:
    """Return the first active process launched with the gateway command.

    Sandbox errors propagate; they are never reported as "no process".
    """
    for process in await sandbox.list_processes():
        if is_gateway_command(process.command) and process.is_active:
            return process
    return None


async def wait_for_process(
    sandbox: Sandbox,
    process: Process,
    timeout_ms: int,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
) -> tuple[Process, bool]:
    """Poll ``process`` until it leaves the active state or ``timeout_ms`` elapses.

    Returns the latest snapshot and whether the wait timed out. Each poll is
    bounded by the time left, so the wait never overruns ``timeout_ms``. The
    process is never killed here: on timeout it is left running. A process
    the sandbox no longer knows is returned with status ``missing``.
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout_ms / 1000
    current = process

    while current.is_active:
        remaining = deadline - loop.time()
        if remaining <= 0:
            return current, True
        await asyncio.sleep(min(poll_interval, remaining))
        try:
            refreshed = await asyncio.wait_for(
                sandbox.get_process(current.id),
                timeout=max(deadline - loop.time(), 0.001),
            )
        except asyncio.TimeoutError:
            return current, True
        if refreshed is None:
            logger.warning(f"Process {current.id} disappeared while waiting")
            return replace(current, status=ProcessStatus.MISSING.value), False
        current = refreshed

    return current, False


class GatewaySupervisor:
    """Keeps one gateway process alive inside a sandbox.

    Lifecycle:
    - ensure(): start the gateway unless one is already active
    - restart(): kill the current gateway (best effort), wait a grace
      period, then relaunch in the background and acknowledge immediately
    - drain(): wait for background relaunches before shutdown
    """

    def __init__(
        self,
        sandbox: Sandbox,
        gateway_env: Optional[dict[str, str]] = None,
        restart_grace_ms: int = DEFAULT_RESTART_GRACE_MS,
    ):
        self.sandbox = sandbox
        self.gateway_env = dict(gateway_env or {})
        self.restart_grace_ms = restart_grace_ms
        self.state = GatewayState.ABSENT
        self._background_tasks: set[asyncio.Task] = set()

    @property
    def pending_relaunches(self) -> int:
        return len(self._background_tasks)

    def _observe(self, process: Optional[Process]) -> None:
        if process is not None:
            new_state = GatewayState.RUNNING
        elif self._background_tasks:
            new_state = GatewayState.RESTARTING
        else:
            new_state = GatewayState.ABSENT
        if new_state != self.state:
            logger.info(f"Gateway state {self.state.value} -> {new_state.value}")
        self.state = new_state

    async def find_process(self) -> Optional[Process]:
        """Run discovery and record the observed state."""
        try:
            process = await find_gateway_process(self.sandbox)
        except Exception:
            self.state = GatewayState.UNKNOWN
            raise
        self._observe(process)
        return process

    async def ensure(self) -> Process:
        """Start the gateway if no gateway process is active.

        Not atomic: a concurrent ensure() may spawn a second gateway.
        """
        process = await self.find_process()
        if process is not None:
            return process

        logger.info(f"No gateway process found, starting: {GATEWAY_COMMAND}")
        try:
            process = await self.sandbox.start_process(
                GATEWAY_COMMAND, env=self.gateway_env
            )
        except Exception as e:
            self.state = GatewayState.UNKNOWN
            logger.error(f"Failed to start gateway: {e}")
            raise

        logger.info(f"Started gateway process {process.id} ({process.status})")
        self.state = GatewayState.RUNNING
        return process

    async def _try_kill(self, process: Process) -> bool:
        """Kill ``process``; failure is logged and reported, never raised."""
        try:
            await self.sandbox.kill_process(process.id)
        except Exception as e:
            logger.error(f"Error killing gateway process {process.id}: {e}")
            return False
        logger.info(f"Killed gateway process {process.id}")
        return True

    async def _relaunch(self) -> None:
        try:
            process = await self.ensure()
        except Exception as e:
            self.state = GatewayState.UNKNOWN
            logger.error(f"Gateway restart failed: {e}")
            return
        logger.info(f"Gateway relaunched as process {process.id}")

    def _schedule_relaunch(self) -> asyncio.Task:
        task = asyncio.create_task(self._relaunch())
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)
        return task

    async def restart(self) -> RestartAck:
        """Kill the running gateway and relaunch it in the background.

        The acknowledgment only says the restart was initiated; callers
        poll status to see the new gateway come up. A failed kill does not
        stop the restart: the relaunch goes ahead regardless.
        """
        existing = await self.find_process()

        if existing is not None:
            self.state = GatewayState.RESTARTING
            # Result only feeds the log; the restart continues either way
            await self._try_kill(existing)
            # Let the old process release its port
            await asyncio.sleep(self.restart_grace_ms / 1000)

        self._schedule_relaunch()
        self.state = GatewayState.RESTARTING

        if existing is not None:
            return RestartAck(
                success=True,
                message="Gateway process killed, new instance starting...",
                previous_process_id=existing.id,
            )
        return RestartAck(
            success=True,
            message="No existing process found, starting new instance...",
        )

    async def drain(self, timeout: float = 30.0) -> None:
        """Wait for pending background relaunches, cancelling stragglers."""
        if not self._background_tasks:
            return
        logger.info(f"Waiting for {len(self._background_tasks)} gateway relaunch(es)")
        _, pending = await asyncio.wait(set(self._background_tasks), timeout=timeout)
        for task in pending:
            logger.warning("Gateway relaunch still running at shutdown, cancelling")
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

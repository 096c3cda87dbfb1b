"""Pytest configuration and fixtures for gatewayops tests."""

from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, Optional

import pytest

from gatewayops.gateway import GATEWAY_COMMAND, GatewaySupervisor
from gatewayops.models import Process, ProcessLogs
from gatewayops.sandbox_client import Sandbox


class FakeSandbox(Sandbox):
    """In-memory sandbox that records every call made against it."""

    def __init__(self):
        self.processes: dict[str, Process] = {}
        self.logs: dict[str, ProcessLogs] = {}
        self.calls: list[tuple] = []
        self.started: list[tuple[str, dict]] = []
        self.fail_on: dict[str, Exception] = {}
        self.start_delay = 0.0
        self.get_process_delay = 0.0
        # Called with each new process; lets a test finish CLI commands
        self.on_start: Optional[Callable[[Process], None]] = None
        self._next_id = 1

    def _record(self, name: str, *args) -> None:
        self.calls.append((name, *args))
        if name in self.fail_on:
            raise self.fail_on[name]

    def add_process(
        self,
        command: str,
        status: str = "running",
        exit_code: Optional[int] = None,
        stdout: str = "",
        stderr: str = "",
    ) -> Process:
        process = Process(
            id=f"proc_{self._next_id}",
            command=command,
            status=status,
            start_time=datetime(2026, 1, 1, tzinfo=timezone.utc),
            exit_code=exit_code,
        )
        self._next_id += 1
        self.processes[process.id] = process
        self.logs[process.id] = ProcessLogs(stdout=stdout, stderr=stderr)
        return process

    def finish(
        self, process_id: str, exit_code: int, stdout: str = "", stderr: str = ""
    ) -> None:
        process = self.processes[process_id]
        process.status = "completed" if exit_code == 0 else "failed"
        process.exit_code = exit_code
        self.logs[process_id] = ProcessLogs(stdout=stdout, stderr=stderr)

    async def list_processes(self) -> list[Process]:
        self._record("list_processes")
        return [replace(p) for p in self.processes.values()]

    async def get_process(self, process_id: str) -> Optional[Process]:
        self._record("get_process", process_id)
        if self.get_process_delay:
            await asyncio.sleep(self.get_process_delay)
        process = self.processes.get(process_id)
        return replace(process) if process else None

    async def start_process(self, command: str, env=None) -> Process:
        self._record("start_process", command)
        if self.start_delay:
            await asyncio.sleep(self.start_delay)
        self.started.append((command, dict(env or {})))
        process = self.add_process(command)
        if self.on_start:
            self.on_start(process)
        return replace(process)

    async def kill_process(self, process_id: str) -> None:
        self._record("kill_process", process_id)
        self.processes[process_id].status = "killed"

    async def get_logs(self, process_id: str) -> ProcessLogs:
        self._record("get_logs", process_id)
        return replace(self.logs.get(process_id, ProcessLogs()))

    def call_names(self) -> list[str]:
        return [call[0] for call in self.calls]


def finish_cli(sandbox: FakeSandbox, exit_code: int, stdout: str = "", stderr: str = ""):
    """on_start hook that completes every ``openclaw config`` call immediately."""

    def hook(process: Process) -> None:
        if process.command.startswith("openclaw config"):
            sandbox.finish(process.id, exit_code, stdout=stdout, stderr=stderr)

    return hook


@pytest.fixture
def sandbox() -> FakeSandbox:
    return FakeSandbox()


@pytest.fixture
def gateway_process(sandbox: FakeSandbox) -> Process:
    """A gateway that is already running."""
    return sandbox.add_process(GATEWAY_COMMAND, stdout="gateway listening on 18789\n")


@pytest.fixture
def supervisor(sandbox: FakeSandbox) -> GatewaySupervisor:
    return GatewaySupervisor(
        sandbox,
        gateway_env={"OPENCLAW_GATEWAY_TOKEN": "secret"},
        restart_grace_ms=20,
    )

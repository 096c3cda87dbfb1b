"""Read-only views of the sandbox process table."""

from typing import Optional

from gatewayops.errors import NotFoundError
from gatewayops.gateway import GatewaySupervisor
from gatewayops.sandbox_client import Sandbox


async def gateway_status(supervisor: GatewaySupervisor) -> dict:
    """Ensure the gateway and report whether a gateway process is present."""
    await supervisor.ensure()
    process = await supervisor.find_process()
    return {
        "ok": process is not None,
        "status": process.status if process else "missing",
        "processId": process.id if process else None,
        "state": supervisor.state.value,
    }


async def list_processes(sandbox: Sandbox) -> dict:
    processes = [process.to_dict() for process in await sandbox.list_processes()]
    return {"count": len(processes), "processes": processes}


async def read_logs(
    supervisor: GatewaySupervisor, process_id: Optional[str] = None
) -> dict:
    """Return captured output of a process.

    With ``process_id`` the process must exist (NotFoundError otherwise).
    Without it the current gateway is used; if none is running a
    ``no_process`` payload is returned instead of an error.
    """
    sandbox = supervisor.sandbox

    if process_id:
        processes = await sandbox.list_processes()
        process = next((p for p in processes if p.id == process_id), None)
        if process is None:
            raise NotFoundError(f"Process {process_id} not found")
    else:
        process = await supervisor.find_process()
        if process is None:
            return {
                "status": "no_process",
                "message": "No gateway process is currently running",
                "stdout": "",
                "stderr": "",
            }

    logs = await sandbox.get_logs(process.id)
    return {
        "status": "ok",
        "process_id": process.id,
        "process_status": process.status,
        "stdout": logs.stdout,
        "stderr": logs.stderr,
    }

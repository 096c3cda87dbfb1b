"""Client side of the sandbox process primitives.

The sandbox itself (spawning, killing, log capture) lives elsewhere; this
module only calls it. ``Sandbox`` is the interface the supervisor depends
on, ``HttpSandbox`` talks to a sandbox process API over HTTP.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Optional

import docker
import httpx
from docker.errors import DockerException, NotFound

from gatewayops.errors import SandboxError
from gatewayops.models import Process, ProcessLogs

logger = logging.getLogger(__name__)

SANDBOX_API_PORT = 2024


class Sandbox(ABC):
    """Process primitives offered by the execution sandbox."""

    @abstractmethod
    async def list_processes(self) -> list[Process]:
        """Return every process the sandbox currently tracks."""
        ...

    @abstractmethod
    async def get_process(self, process_id: str) -> Optional[Process]:
        """Return a fresh snapshot of one process, or None if unknown."""
        ...

    @abstractmethod
    async def start_process(
        self, command: str, env: Optional[dict[str, str]] = None
    ) -> Process:
        """Spawn a background process and return its initial snapshot."""
        ...

    @abstractmethod
    async def kill_process(self, process_id: str) -> None:
        """Kill a process."""
        ...

    @abstractmethod
    async def get_logs(self, process_id: str) -> ProcessLogs:
        """Return the captured stdout/stderr of a process."""
        ...

    async def close(self) -> None:
        """Release any resources held by the client."""


class HttpSandbox(Sandbox):
    """Sandbox backed by a process API reachable over HTTP.

    Endpoints used:
        GET  /processes                 - list processes
        POST /processes                 - start a process {command, env}
        GET  /processes/{id}            - process snapshot
        POST /processes/{id}/kill       - kill a process
        GET  /processes/{id}/logs       - captured {stdout, stderr}
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._http_client: Optional[httpx.AsyncClient] = None

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create a shared httpx client for connection reuse."""
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
            )
        return self._http_client

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        client = await self._get_http_client()
        try:
            response = await client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise SandboxError(f"Sandbox request {method} {path} failed: {e}") from e
        return response

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.is_success:
            return
        try:
            data = response.json()
        except ValueError:
            data = None
        detail = data.get("error") if isinstance(data, dict) else None
        detail = detail or response.text or response.reason_phrase
        raise SandboxError(f"Sandbox returned {response.status_code}: {detail}")

    async def list_processes(self) -> list[Process]:
        response = await self._request("GET", "/processes")
        self._raise_for_status(response)
        data = response.json()
        if isinstance(data, dict):
            data = data.get("processes", [])
        return [Process.from_dict(item) for item in data]

    async def get_process(self, process_id: str) -> Optional[Process]:
        response = await self._request("GET", f"/processes/{process_id}")
        if response.status_code == 404:
            return None
        self._raise_for_status(response)
        return Process.from_dict(response.json())

    async def start_process(
        self, command: str, env: Optional[dict[str, str]] = None
    ) -> Process:
        response = await self._request(
            "POST", "/processes", json={"command": command, "env": env or {}}
        )
        self._raise_for_status(response)
        return Process.from_dict(response.json())

    async def kill_process(self, process_id: str) -> None:
        response = await self._request("POST", f"/processes/{process_id}/kill")
        self._raise_for_status(response)

    async def get_logs(self, process_id: str) -> ProcessLogs:
        response = await self._request("GET", f"/processes/{process_id}/logs")
        self._raise_for_status(response)
        data = response.json()
        return ProcessLogs(
            stdout=data.get("stdout") or "",
            stderr=data.get("stderr") or "",
        )

    async def close(self) -> None:
        if self._http_client and not self._http_client.is_closed:
            await self._http_client.aclose()
            self._http_client = None


def _container_api_url(container) -> str:
    """Derive the process API URL from a container's network settings."""
    container.reload()
    ports = container.attrs["NetworkSettings"]["Ports"] or {}
    port_mapping = ports.get(f"{SANDBOX_API_PORT}/tcp")
    if port_mapping:
        return f"http://127.0.0.1:{int(port_mapping[0]['HostPort'])}"
    # Fallback to container IP if no port mapping
    networks = container.attrs["NetworkSettings"]["Networks"]
    for network in networks.values():
        if network.get("IPAddress"):
            return f"http://{network['IPAddress']}:{SANDBOX_API_PORT}"
    raise SandboxError(f"Container {container.name} has no accessible address")


async def resolve_container_api_url(container_name: str) -> str:
    """Resolve the sandbox process API URL of a running docker container."""

    def resolve():
        try:
            client = docker.from_env()
        except DockerException as e:
            raise SandboxError(f"Docker unavailable: {e}") from e
        try:
            container = client.containers.get(container_name)
            return _container_api_url(container)
        except NotFound as e:
            raise SandboxError(f"Sandbox container {container_name} not found") from e
        except DockerException as e:
            raise SandboxError(f"Docker unavailable: {e}") from e
        finally:
            client.close()

    url = await asyncio.get_running_loop().run_in_executor(None, resolve)
    logger.info(f"Resolved sandbox container {container_name} to {url}")
    return url

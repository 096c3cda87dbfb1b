#!/usr/bin/env python3
"""
gatewayops server - HTTP control plane for the sandboxed gateway.

Endpoints:
    GET  /status        - Ensure the gateway and report its process
    GET  /processes     - List all sandbox processes
    GET  /logs          - Captured output of the gateway (or ?id=<process>)
    POST /restart       - Kill and relaunch the gateway in the background
    GET  /config/get    - Read an allowlisted config key (?path=)
    POST /config/set    - Write an allowlisted config key (?path=&value=)
    GET  /health        - Liveness check, no sandbox call

Usage:
    gatewayops --host 0.0.0.0 --port 8787
"""

import argparse
import hmac
import logging
from http import HTTPStatus
from typing import Awaitable, Callable, Optional

from aiohttp import web

from gatewayops.command_proxy import run_config_command
from gatewayops.config import OpsConfig
from gatewayops.errors import GatewayOpsError, NotFoundError
from gatewayops.gateway import GatewaySupervisor
from gatewayops.models import ConfigCommand
from gatewayops.sandbox_client import HttpSandbox, Sandbox, resolve_container_api_url
from gatewayops.status import gateway_status, list_processes, read_logs

logger = logging.getLogger(__name__)

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]

PUBLIC_PATHS = frozenset({"/health"})


def _error_message(error: Exception) -> str:
    return str(error) or "Unknown error"


def create_access_middleware(access_token: Optional[str]):
    """Require ``Authorization: Bearer <access_token>`` on every non-public route."""

    @web.middleware
    async def access_middleware(request: web.Request, handler: Handler):
        if access_token is None or request.path in PUBLIC_PATHS:
            return await handler(request)

        auth_header = request.headers.get("Authorization", "")
        token = auth_header[7:] if auth_header.startswith("Bearer ") else ""
        if not token or not hmac.compare_digest(token, access_token):
            logger.warning(f"Rejected unauthenticated {request.method} {request.path}")
            return web.json_response(
                {"error": "Unauthorized"}, status=HTTPStatus.UNAUTHORIZED
            )
        return await handler(request)

    return access_middleware


class OpsAPI:
    def __init__(self, config: OpsConfig, sandbox: Optional[Sandbox] = None):
        self.config = config
        self.sandbox = sandbox
        self.supervisor: Optional[GatewaySupervisor] = None
        if sandbox is not None:
            self._init_supervisor(sandbox)

    def _init_supervisor(self, sandbox: Sandbox) -> None:
        self.sandbox = sandbox
        self.supervisor = GatewaySupervisor(
            sandbox,
            gateway_env=self.config.gateway_env,
            restart_grace_ms=self.config.restart_grace_ms,
        )

    async def on_startup(self, app: web.Application) -> None:
        if self.sandbox is not None:
            return
        sandbox_url = self.config.sandbox_url
        if self.config.sandbox_container:
            sandbox_url = await resolve_container_api_url(self.config.sandbox_container)
        self._init_supervisor(HttpSandbox(sandbox_url))
        logger.info(f"Using sandbox process API at {sandbox_url}")

    async def on_cleanup(self, app: web.Application) -> None:
        if self.supervisor is not None:
            await self.supervisor.drain()
        if self.sandbox is not None:
            await self.sandbox.close()

    async def health(self, request: web.Request) -> web.Response:
        """Health check endpoint."""
        return web.json_response({"status": "ok"})

    async def status(self, request: web.Request) -> web.Response:
        """Ensure the gateway and report its process."""
        try:
            body = await gateway_status(self.supervisor)
        except Exception as e:
            logger.error(f"Status check failed: {e}")
            return web.json_response(
                {"ok": False, "error": _error_message(e)},
                status=HTTPStatus.INTERNAL_SERVER_ERROR,
            )
        return web.json_response(body)

    async def processes(self, request: web.Request) -> web.Response:
        """List every process the sandbox tracks."""
        try:
            body = await list_processes(self.sandbox)
        except Exception as e:
            logger.error(f"Listing processes failed: {e}")
            return web.json_response(
                {"error": _error_message(e)}, status=HTTPStatus.INTERNAL_SERVER_ERROR
            )
        return web.json_response(body)

    async def logs(self, request: web.Request) -> web.Response:
        """Return captured output of the gateway or of ``?id=``."""
        process_id = request.query.get("id")
        try:
            body = await read_logs(self.supervisor, process_id)
        except NotFoundError as e:
            return web.json_response(
                {"status": "not_found", "message": e.message, "stdout": "", "stderr": ""},
                status=HTTPStatus.NOT_FOUND,
            )
        except Exception as e:
            logger.error(f"Reading logs failed: {e}")
            return web.json_response(
                {
                    "status": "error",
                    "message": f"Failed to get logs: {_error_message(e)}",
                    "stdout": "",
                    "stderr": "",
                },
                status=HTTPStatus.INTERNAL_SERVER_ERROR,
            )
        return web.json_response(body)

    async def restart(self, request: web.Request) -> web.Response:
        """Kill the gateway and relaunch it after the response is sent."""
        try:
            ack = await self.supervisor.restart()
        except Exception as e:
            logger.error(f"Restart failed: {e}")
            return web.json_response(
                {"error": _error_message(e)}, status=HTTPStatus.INTERNAL_SERVER_ERROR
            )

        body = {"success": ack.success, "message": ack.message}
        if ack.previous_process_id is not None:
            body["previousProcessId"] = ack.previous_process_id
        return web.json_response(body)

    async def _config_command(
        self, request: web.Request, kind: ConfigCommand
    ) -> web.Response:
        path = request.query.get("path")
        value = request.query.get("value") if kind == ConfigCommand.SET else None

        try:
            result = await run_config_command(
                self.supervisor,
                kind,
                path,
                value,
                timeout_ms=self.config.cli_timeout_ms,
            )
        except GatewayOpsError as e:
            if e.status_code >= 500:
                logger.error(f"Config {kind.value} failed: {e}")
            return web.json_response({"error": e.message}, status=e.status_code)
        except Exception as e:
            logger.error(f"Config {kind.value} failed: {e}")
            return web.json_response(
                {"error": _error_message(e)}, status=HTTPStatus.INTERNAL_SERVER_ERROR
            )

        return web.json_response({
            "success": result.success,
            "path": path,
            "status": result.status,
            "exitCode": result.exit_code,
            "timedOut": result.timed_out,
            "stdout": result.stdout,
            "stderr": result.stderr,
        })

    async def config_get(self, request: web.Request) -> web.Response:
        """Read an allowlisted config key through the gateway CLI."""
        return await self._config_command(request, ConfigCommand.GET)

    async def config_set(self, request: web.Request) -> web.Response:
        """Write an allowlisted config key through the gateway CLI."""
        return await self._config_command(request, ConfigCommand.SET)

    def create_app(self) -> web.Application:
        """Create the aiohttp application."""
        if self.config.access_token is None:
            logger.warning("OPS_ACCESS_TOKEN not set, access check disabled")

        app = web.Application(
            middlewares=[create_access_middleware(self.config.access_token)]
        )
        app.on_startup.append(self.on_startup)
        app.on_cleanup.append(self.on_cleanup)
        app.router.add_get("/health", self.health)
        app.router.add_get("/status", self.status)
        app.router.add_get("/processes", self.processes)
        app.router.add_get("/logs", self.logs)
        app.router.add_post("/restart", self.restart)
        app.router.add_get("/config/get", self.config_get)
        app.router.add_post("/config/set", self.config_set)
        return app


def main():
    logging.basicConfig(level=logging.INFO)

    config = OpsConfig.from_env()
    parser = argparse.ArgumentParser(description="Gateway ops control plane")
    parser.add_argument(
        "--host",
        default=config.host,
        help=f"Host to bind to (default: {config.host})",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=config.port,
        help=f"Port to listen on (default: {config.port})",
    )
    args = parser.parse_args()
    config.host = args.host
    config.port = args.port

    api = OpsAPI(config)
    app = api.create_app()

    logger.info(f"gatewayops listening on {config.host}:{config.port}")
    web.run_app(app, host=config.host, port=config.port, print=None)


if __name__ == "__main__":
    main()

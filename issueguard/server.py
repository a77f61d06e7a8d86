"""HTTP server and CLI entry points."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import uvicorn
from fastapi import Body, FastAPI
from fastapi.responses import JSONResponse

from .client import TrackerClient
from .config import (
    GuardConfig,
    format_errors,
    generate_template,
    get_json_schema,
    get_suggestions,
    load_config,
    validate_environment,
    validate_environment_or_raise,
)
from .exceptions import ConfigValidationError, IssueGuardException
from .guard import Guard
from .tools import HEALTH_CHECK, Tool, build_tools


class ToolServer:
    def __init__(self, guard: Guard, client: TrackerClient, tools: dict[str, Tool] | None = None) -> None:
        self.guard = guard
        self.client = client
        self.tools = tools if tools is not None else build_tools(client)

    @property
    def tool_names(self) -> list[str]:
        return [*self.tools, HEALTH_CHECK]

    async def health(self) -> dict[str, Any]:
        snapshot = await self.guard.check_health(self.client.probe, len(self.tool_names))
        return snapshot.to_dict()

    async def call(self, name: str, params: dict[str, Any] | None) -> Any:
        if name == HEALTH_CHECK:
            return await self.guard.dispatch(name, params, lambda _: self.health())
        tool = self.tools[name]
        return await self.guard.dispatch(name, params, tool.handler, expected_types=tool.expected_types)


def _error_response(exc: IssueGuardException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.http_status,
        content={"error": type(exc).__name__, "message": str(exc), "details": exc.details},
    )


def create_app(server: ToolServer) -> FastAPI:
    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        yield
        await server.client.aclose()

    app = FastAPI(title="issueguard", lifespan=lifespan)

    @app.get("/healthz")
    async def healthz() -> dict[str, Any]:
        return await server.health()

    @app.get("/metrics")
    async def metrics() -> dict[str, Any]:
        return server.guard.health.get_system_metrics().to_dict()

    @app.get("/tools")
    async def list_tools() -> dict[str, Any]:
        return {"tools": server.tool_names}

    @app.post("/tools/{name}", response_model=None)
    async def call_tool(name: str, params: dict[str, Any] | None = Body(default=None)) -> Any:
        if name not in server.tool_names:
            return JSONResponse(status_code=404, content={"error": "UnknownTool", "message": f"Unknown tool: {name}"})
        try:
            result = await server.call(name, params)
        except IssueGuardException as exc:
            return _error_response(exc)
        except Exception as exc:
            return JSONResponse(status_code=500, content={"error": type(exc).__name__, "message": str(exc)})
        return {"tool": name, "result": result}

    return app


def _load(args: argparse.Namespace) -> GuardConfig:
    if getattr(args, "config", None):
        return load_config(args.config)
    return validate_environment_or_raise()


async def run_server(args: argparse.Namespace) -> None:
    config = _load(args)
    logging.basicConfig(level=config.logging_level)
    guard = Guard(config)
    server = ToolServer(guard, TrackerClient(config))
    app = create_app(server)
    log_level = "warning" if config.log_level == "warn" else config.log_level
    uv_config = uvicorn.Config(app, host=args.host, port=args.port, log_level=log_level)
    await uvicorn.Server(uv_config).serve()


def run_config(args: argparse.Namespace) -> int:
    if args.action == "schema":
        print(json.dumps(get_json_schema(), indent=2))
        return 0
    if args.action == "template":
        print(generate_template())
        return 0
    if args.config:
        try:
            config = load_config(args.config)
        except ConfigValidationError as exc:
            print(exc, file=sys.stderr)
            return 1
    else:
        result = validate_environment()
        if not result.success:
            print(format_errors(result.issues), file=sys.stderr)
            for suggestion in get_suggestions(result.issues):
                print(f"- {suggestion}", file=sys.stderr)
            return 1
        config = result.config
    print("OK", json.dumps(config.model_dump(by_alias=True, exclude={"credential"})))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="issueguard", description="Guarded issue tracker tools")
    sub = parser.add_subparsers(dest="command")

    serve_cmd = sub.add_parser("serve", help="Run the tool server")
    serve_cmd.add_argument("--config", help="YAML or JSON config file (defaults to environment)")
    serve_cmd.add_argument("--host", default="127.0.0.1")
    serve_cmd.add_argument("--port", type=int, default=8787)

    config_cmd = sub.add_parser("config", help="Validate or describe configuration")
    config_cmd.add_argument("action", choices=["check", "schema", "template"])
    config_cmd.add_argument("--config", help="YAML or JSON config file (defaults to environment)")

    return parser


def cli_main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command == "serve":
        asyncio.run(run_server(args))
    elif args.command == "config":
        return run_config(args)
    else:
        parser.print_help()
    return 0

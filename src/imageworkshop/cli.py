from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import replace

from .config import load_config
from .invokers import build_invoker
from .router import McpRouter
from .tools.registry import tool_definitions


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="imageworkshop",
        description="MCP gateway for Stability AI image tools.",
    )
    subparsers = parser.add_subparsers(dest="command")

    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the MCP router and all tool backends as one local HTTP server",
    )
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    serve_parser.add_argument("--port", type=int, default=3000, help="Port (default: 3000)")
    serve_parser.set_defaults(func=serve_command)

    tools_parser = subparsers.add_parser("tools", help="Print the tool catalogue as JSON")
    tools_parser.set_defaults(func=tools_command)

    call_parser = subparsers.add_parser("call", help="Run one tools/call through the router")
    call_parser.add_argument("name", help="Tool name, e.g. txt2img_stable_diffusion")
    call_parser.add_argument("--arguments", default="{}", help="Tool arguments as a JSON object")
    call_parser.set_defaults(func=call_command)

    return parser


def serve_command(args: argparse.Namespace) -> int:
    import uvicorn

    from .app import create_app

    config = load_config()
    if not config.local_api_base_url:
        # Without an explicit target, tool calls loop back to this server.
        config = replace(config, local_api_base_url=f"http://{args.host}:{args.port}")
    uvicorn.run(create_app(config), host=args.host, port=args.port)
    return 0


def tools_command(args: argparse.Namespace) -> int:
    print(json.dumps(tool_definitions(), indent=2))
    return 0


def call_command(args: argparse.Namespace) -> int:
    try:
        arguments = json.loads(args.arguments)
    except json.JSONDecodeError as exc:
        print(f"--arguments is not valid JSON: {exc}", file=sys.stderr)
        return 2
    config = load_config()
    router = McpRouter(build_invoker(config), config=config)
    request = {
        "jsonrpc": "2.0",
        "id": 1,
        "method": "tools/call",
        "params": {"name": args.name, "arguments": arguments},
    }
    response = asyncio.run(router.handle_rpc(request))
    print(json.dumps(response, indent=2))
    return 1 if "error" in response else 0


def main() -> None:
    # Logs go to stderr; stdout carries the JSON output.
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    parser = build_parser()
    args = parser.parse_args()
    if hasattr(args, "func"):
        sys.exit(args.func(args))
    parser.print_help()
    sys.exit(2)


if __name__ == "__main__":
    main()

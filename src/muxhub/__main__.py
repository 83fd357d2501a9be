"""
Command line entry point: serve the hub over stdio.

    python -m muxhub --config muxhub.config.yaml --blueprint-id <id>
"""

import argparse
import asyncio
from typing import List, Optional

from muxhub.app import MuxHubApp
from muxhub.config.settings import load_config
from muxhub.mcp.errors import BlueprintError
from muxhub.server import build_server
from muxhub.utils.secrets import load_env_files


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="muxhub",
        description="Connection hub routing tool calls to MCP servers",
    )
    parser.add_argument("--config", help="Path to the YAML configuration file")
    parser.add_argument("--blueprint-id", help="Blueprint whose servers are connected on startup")
    parser.add_argument("--servers-file", help="JSON or YAML file with an mcpServers mapping")
    parser.add_argument("--log-level", help="Log level (debug, info, warning, error)")
    return parser.parse_args(argv)


async def serve(args: argparse.Namespace) -> None:
    settings = load_config(args.config)
    if args.blueprint_id:
        settings.blueprint.id = args.blueprint_id
    if args.log_level:
        settings.logging.level = args.log_level

    app = MuxHubApp(settings=settings)
    async with app.run() as running_app:
        if args.servers_file:
            try:
                await running_app.bootstrap.load_file(args.servers_file)
            except (OSError, BlueprintError) as e:
                running_app.logger.error(f"Failed to load servers file: {e}")

        server = build_server(running_app)
        await server.run_stdio_async()


def main(argv: Optional[List[str]] = None) -> None:
    load_env_files()
    asyncio.run(serve(parse_args(argv)))


if __name__ == "__main__":
    main()

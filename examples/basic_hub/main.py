"""
Basic hub example: connect the demo search server, browse and call its tools.

Run from this directory:
    python main.py
"""

import asyncio
import os

from muxhub import MuxHubApp, ToolSearch, load_config


async def main():
    """Run the basic hub example."""
    config_path = os.path.join(os.path.dirname(__file__), "muxhub.config.yaml")
    app = MuxHubApp(name="basic_hub", settings=load_config(config_path))

    async with app.run() as hub:
        print(f"Connected servers: {hub.registry.list_servers()}")

        for summary in await hub.catalog.list_tool_summaries("search"):
            print(f"  - {summary.name}: {summary.description}")

        found = await hub.catalog.search(ToolSearch(pattern="fact"))
        print(f"\nTools matching 'fact': {found}")

        result = await hub.router.call_tool("search", "search", {"query": "weather in Lisbon"})
        print("\nResult:")
        for content in result.content:
            print(f"  {getattr(content, 'text', content)}")


if __name__ == "__main__":
    asyncio.run(main())

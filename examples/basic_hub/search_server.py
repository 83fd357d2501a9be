"""
Simple search server for demo purposes.
"""

import sys

from mcp.server.fastmcp import FastMCP


app = FastMCP("search-server")


@app.tool()
async def search(query: str) -> str:
    """
    Search for information.

    Args:
        query: The search query.

    Returns:
        Results of the search.
    """
    print(f"Received search query: {query}", file=sys.stderr)

    if "weather" in query.lower():
        return "The weather is sunny with a high of 75°F."
    elif "news" in query.lower():
        return "Latest news: muxhub released!"
    else:
        return f"Search results for: {query}\n- Result 1\n- Result 2\n- Result 3"


@app.tool()
async def quick_facts(topic: str) -> str:
    """
    Get quick facts about a topic.

    Args:
        topic: The topic to get facts about.
    """
    facts = {
        "python": "Python is a programming language created by Guido van Rossum in 1991.",
        "mcp": "MCP (Model Context Protocol) connects AI applications to tools and data.",
    }

    return facts.get(topic.lower(), f"No facts available for {topic}")


if __name__ == "__main__":
    app.run()

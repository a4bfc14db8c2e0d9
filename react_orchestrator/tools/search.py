"""
SearXNG Web Search Tool

Provides web search capabilities via a SearXNG instance.
"""

import logging
from typing import Annotated, Literal, Optional

import requests
from pydantic import Field

from ..config import config
from .registry import ToolParameter, ToolRegistry

logger = logging.getLogger(__name__)


def search(
    query: str,
    category: Optional[str] = None,
    max_results: int = 5,
) -> dict:
    """
    Search the web using SearXNG.

    Args:
        query: The search query
        category: Optional category filter ("general", "news", "images", "videos")
        max_results: Maximum number of results to return

    Returns:
        Dictionary with search results

    Raises:
        ValueError: If the query is empty.
        requests.exceptions.RequestException: If SearXNG is unreachable.
    """
    if not query or not query.strip():
        raise ValueError('Search query is empty. Expected JSON: {"query": "your search terms"}')

    params = {
        "q": query,
        "format": "json",
    }
    if category:
        params["categories"] = category

    try:
        response = requests.get(
            config.tools.searxng_endpoint,
            params=params,
            timeout=config.tools.searxng_timeout,
        )
        response.raise_for_status()
        data = response.json()
    except requests.exceptions.RequestException as e:
        logger.error(f"Search failed: {e}")
        raise

    results = []
    for rank, result in enumerate(data.get("results", [])[:max_results], 1):
        results.append({
            "rank": rank,
            "title": result.get("title", ""),
            "url": result.get("url", ""),
            "content": result.get("content", ""),
            "engine": result.get("engine", ""),
        })

    return {
        "query": query,
        "category": category or "general",
        "results": results,
        "total": len(results),
    }


def format_results_for_llm(search_results: dict) -> str:
    """Format search results into a string suitable for LLM consumption."""
    if not search_results.get("results"):
        return "No results found."

    formatted = f"Search results for '{search_results['query']}':\n\n"
    for result in search_results["results"]:
        formatted += f"{result['rank']}. {result['title']}\n"
        formatted += f"   URL: {result['url']}\n"
        if result["content"]:
            formatted += f"   {result['content'][:200]}...\n"
        formatted += "\n"
    return formatted


def _handle_search(params: dict) -> dict:
    return search(
        query=params["query"],
        category=params.get("category"),
        max_results=params.get("max_results", 5),
    )


def register(registry: ToolRegistry) -> None:
    registry.register(
        name="web_search",
        description=(
            "Searches the internet for information on a given topic. Returns relevant "
            "results with titles, snippets and URLs."
        ),
        parameters=[
            ToolParameter(
                name="query",
                type="string",
                description='Search query string (e.g., "artificial intelligence")',
                required=True,
                schema=Annotated[str, Field(min_length=1)],
            ),
            ToolParameter(
                name="max_results",
                type="integer",
                description="Maximum number of results to return (1-20, default: 5)",
                schema=Annotated[int, Field(ge=1, le=20)],
            ),
            ToolParameter(
                name="category",
                type="string",
                description='Search category: "general", "news", "images" or "videos"',
                schema=Literal["general", "news", "images", "videos"],
            ),
        ],
        handler=_handle_search,
        formatter=format_results_for_llm,
    )

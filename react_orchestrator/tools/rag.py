"""
Retrieval-augmented query tool

Forwards a question to a retrieval service which searches its document
store and answers from the matching passages.
"""

import logging
from typing import Annotated

import requests
from pydantic import Field

from ..config import config
from .registry import ToolParameter, ToolRegistry

logger = logging.getLogger(__name__)


def rag_query(params: dict) -> dict:
    """
    POST ``{"query", "limit"}`` to the configured retrieval endpoint.

    Returns:
        Dictionary with the answer and its source passages

    Raises:
        RuntimeError: If the service answers with an error status or is
            unreachable.
    """
    query = params["query"]
    limit = params.get("limit", 5)

    try:
        response = requests.post(
            config.tools.rag_endpoint,
            json={"query": query, "limit": limit},
            timeout=config.tools.rag_timeout,
        )
    except requests.exceptions.RequestException as e:
        logger.error(f"RAG request failed: {e}")
        raise RuntimeError(f"RAG query failed: {e}") from e

    if not response.ok:
        detail = ""
        try:
            detail = response.json().get("error", "")
        except ValueError:
            pass
        message = f"RAG query failed: {response.status_code} {response.reason}"
        if detail:
            message += f" - {detail}"
        raise RuntimeError(message)

    data = response.json()
    sources = data.get("sources") or []
    return {
        "query": query,
        "answer": data.get("answer", ""),
        "sources": sources,
    }


def format_result_for_llm(result: dict) -> str:
    return (
        f"Query: {result['query']}\n"
        f"Answer: {result['answer']}\n"
        f"Sources: {len(result['sources'])}"
    )


def register(registry: ToolRegistry) -> None:
    registry.register(
        name="rag_query",
        description=(
            "Runs a retrieval-augmented query: searches the document store for "
            "relevant passages and answers from them."
        ),
        parameters=[
            ToolParameter(
                name="query",
                type="string",
                description="Question to answer from the document store",
                required=True,
            ),
            ToolParameter(
                name="limit",
                type="integer",
                description="Maximum number of source passages (default: 5)",
                schema=Annotated[int, Field(ge=1, le=50)],
            ),
        ],
        handler=rag_query,
        formatter=format_result_for_llm,
    )

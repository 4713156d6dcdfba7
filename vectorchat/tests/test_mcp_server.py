# tests/test_mcp_server.py
import pytest

from fastmcp import Client
from fastmcp.exceptions import ToolError


@pytest.fixture
def mcp_server(repository, embedding_service):
    """
    FastMCP instance wired to the in-memory repository and a fake embedder.
    """
    from vectorchat.api.controller import build_controller
    from vectorchat.api.mcp_server import VectorChatMCPServer
    from vectorchat.common.config import VectorChatConfig
    from vectorchat.common.llm_client import LLMClient

    controller = build_controller(
        VectorChatConfig(),
        repository=repository,
        embedding_service=embedding_service,
        llm_client=LLMClient(provider="openai"),
    )
    app = VectorChatMCPServer(controller, mcp_server_name="test-vectorchat")
    return app.mcp


def _data(result):
    return getattr(result, "data", None) or getattr(result, "structured", None) \
        or getattr(result, "structured_content", None)


@pytest.mark.asyncio
async def test_tools_registered(mcp_server):
    async with Client(mcp_server) as client:
        tools = await client.list_tools()
        names = sorted(t.name for t in tools)
        assert names == ["ask", "test_connection"]


@pytest.mark.asyncio
async def test_ask(mcp_server):
    async with Client(mcp_server) as client:
        result = await client.call_tool("ask", {"question": "Find neon art", "collection": "artworks"})
        data = _data(result)

        assert data["ok"] is True
        assert data["results"]["query_type"] == "search"
        assert data["results"]["display"].startswith("1. **Chris Dyer** [a1]")


@pytest.mark.asyncio
async def test_ask_follow_up_with_returned_context(mcp_server):
    async with Client(mcp_server) as client:
        first = _data(await client.call_tool(
            "ask", {"question": "Show me Chris Dyer's work", "collection": "artworks"}
        ))
        second = _data(await client.call_tool(
            "ask", {"question": "How many images do they have?", "context": first["results"]["context"]}
        ))

        assert second["ok"] is True
        assert second["results"]["answer"] == "Found 2 results for Chris Dyer."


@pytest.mark.asyncio
async def test_ask_processing_error(mcp_server):
    async with Client(mcp_server) as client:
        data = _data(await client.call_tool("ask", {"question": "  "}))

        assert data["ok"] is False
        assert data["code"] == "QUERY_PROCESSING_FAILED"


@pytest.mark.asyncio
async def test_ask_invalid_context(mcp_server):
    async with Client(mcp_server) as client:
        with pytest.raises(ToolError, match="Invalid context parameter"):
            await client.call_tool(
                "ask", {"question": "Find cats", "context": {"conversationHistory": "not a list"}}
            )


@pytest.mark.asyncio
async def test_test_connection(mcp_server, repository):
    async with Client(mcp_server) as client:
        data = _data(await client.call_tool("test_connection", {}))
        assert data == {"ok": True, "results": {"connected": True}}

        repository.connected = False
        data = _data(await client.call_tool("test_connection", {}))
        assert data["results"]["connected"] is False

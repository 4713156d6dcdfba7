"""
vectorchat MCP Server

Exposes the ask operation to MCP clients over stdio.

Tool Return Format:
{
    "ok": bool,
    "results": Any,          # Present if ok is True
    "error": str,            # Present if ok is False
    "code": str              # Present if ok is False
}
"""

import argparse
import logging
import os
import signal
from pathlib import Path
from typing import Annotated, Any, Dict, Optional

from dotenv import load_dotenv
from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from mcp.types import ToolAnnotations
from pydantic import Field
from pydantic import ValidationError as PydanticValidationError

from ..common.config import configure_logging, load_config
from ..common.errors import VectorChatError
from ..common.schemas.conversation import ConversationContext
from ..common.schemas.query import NaturalQueryRequest
from ..common.schemas.search import SearchHit
from ..retriever.synthesizer import format_hits_for_display
from .controller import QueryController, build_controller

logger = logging.getLogger("vectorchat.mcp")


class VectorChatMCPServer:
    """
    MCP front end for a QueryController.

    Conversation context is owned by the client: each ``ask`` result carries
    the context to send with the next question.
    """

    def __init__(self, controller: QueryController, mcp_server_name: str = "vectorchat") -> None:
        self.controller = controller
        self.mcp = FastMCP(name=mcp_server_name)

        # ---------- MCP Tools: Ask ---------- #
        @self.mcp.tool(
            name="ask",
            description=(
                "Ask a natural-language question about the contents of a vector collection. "
                "Counts, filtered lookups by name and semantic searches are answered from the "
                "collection. Pass the returned context back with the next question so follow-ups "
                "like 'how many do they have?' resolve."
            ),
            annotations=ToolAnnotations(readOnlyHint=True, destructiveHint=False),
        )
        async def tool_ask(
            question: Annotated[str, Field(description="the question, in any language")],
            collection: Annotated[Optional[str], Field(description="collection to search; optional when the question or context names one")] = None,
            provider: Annotated[Optional[str], Field(description="embedding provider: openai or gemini")] = None,
            model: Annotated[Optional[str], Field(description="chat model the caller uses, e.g. gpt-4o-mini")] = None,
            context: Annotated[Optional[Dict[str, Any]], Field(description="context returned by the previous ask call")] = None,
        ) -> Dict[str, Any]:
            """
            MCP tool answering one question.

            Returns:
                Dict[str, Any]: answer, query_type, data, execution_time_ms, context and a
                markdown rendering of the top hits.
            """
            try:
                request = NaturalQueryRequest(
                    question=question,
                    collection=collection,
                    provider=provider,
                    model=model,
                    context=ConversationContext.model_validate(context) if context else None,
                )
            except PydanticValidationError as exc:
                raise ToolError(f"Invalid context parameter: {exc}") from exc

            try:
                response = await self.controller.handle_natural_query(request)
            except VectorChatError as exc:
                return {"ok": False, "error": exc.message, "code": exc.code}

            results = response.to_payload()
            if response.data is not None:
                hits = [SearchHit(**hit) for hit in response.data]
                results["display"] = format_hits_for_display(hits)
            return {"ok": True, "results": results}

        # ---------- MCP Tools: Test Connection ---------- #
        @self.mcp.tool(
            name="test_connection",
            description="Check whether the vector store is reachable.",
            annotations=ToolAnnotations(readOnlyHint=True, destructiveHint=False),
        )
        async def tool_test_connection() -> Dict[str, Any]:
            """
            MCP tool probing the vector store.

            Returns:
                Dict[str, Any]: {"ok": True, "results": {"connected": bool}}
            """
            return {"ok": True, "results": await self.controller.test_connection()}

    def run(self) -> None:
        """Runs the MCP server using stdio transport."""
        self.mcp.run(transport="stdio")


def main() -> None:
    load_dotenv()

    parser = argparse.ArgumentParser(description="Run the vectorchat MCP server (stdio).")
    parser.add_argument(
        "--server-name",
        default=os.getenv("MCP_SERVER_NAME", "vectorchat"),
        help="Advertised MCP server name.",
    )
    parser.add_argument(
        "--config",
        default=os.getenv("VECTORCHAT_CONFIG"),
        help="Path to a vectorchat config.json (default: ~/.vectorchat/config.json).",
    )
    args = parser.parse_args()

    config = load_config(Path(args.config).expanduser() if args.config else None)
    configure_logging(config.server.log_level)
    logger.info("Starting MCP server %s (endpoint: %s)", args.server_name, config.vector_store.endpoint)

    app = VectorChatMCPServer(build_controller(config), mcp_server_name=args.server_name)

    def _handle_shutdown(signum, frame):
        raise SystemExit(0)
    for sig in (signal.SIGINT, getattr(signal, "SIGTERM", None)):
        if sig is not None:
            signal.signal(sig, _handle_shutdown)

    app.run()


if __name__ == "__main__":
    main()

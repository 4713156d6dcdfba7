"""
vectorchat API

Query controller plus thin HTTP (FastAPI) and MCP (FastMCP) front ends.
"""

from .controller import QueryController, build_controller

__all__ = ["QueryController", "build_controller"]

"""MCP tool registration."""

from mcp.server.fastmcp import FastMCP

from ..config import Config
from .guidance import register_guidance_tools


def register_all_tools(mcp: FastMCP, config: Config) -> None:
	"""Register all MCP tools."""
	register_guidance_tools(mcp, config)

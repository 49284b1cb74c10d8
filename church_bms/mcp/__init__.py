"""MCP servers for the church registry."""

from church_bms.mcp.servers.registry_server import mcp as registry_mcp

__all__ = ["registry_mcp"]

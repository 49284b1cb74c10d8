"""FastMCP tool servers."""

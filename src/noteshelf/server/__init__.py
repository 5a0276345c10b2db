"""MCP server for the noteshelf service."""

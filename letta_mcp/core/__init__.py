"""Core runtime: API client, error taxonomy, logging and the MCP server binding."""

"""MCP server layer (tool registration and process lifecycle)."""

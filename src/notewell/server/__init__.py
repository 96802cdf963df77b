"""MCP server surface for Notewell."""

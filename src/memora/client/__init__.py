"""Client module - HTTP client, local index, sync agent and CLI."""

"""Shared infrastructure: logging, config parsing, asyncio helpers and the REST API."""

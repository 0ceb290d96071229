#!/usr/bin/env python3
"""Sonarr MCP Server - TV series management over MCP."""

import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional, Tuple

import uvicorn
from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from starlette.applications import Starlette

from .base import create_starlette_app, setup_logging
from .catalog import build_registry
from .client import SonarrClient
from .config import AppConfig, ConfigError, load_config
from .registry import Registry, Resource, ToolInput
from .tools.activity import GetHistoryInput, GetWantedInput, ManageQueueInput, SearchMissingInput
from .tools.episodes import ListEpisodesInput, MonitorEpisodesInput, SearchEpisodesInput
from .tools.series import (
    AddSeriesInput,
    ListSeriesInput,
    RemoveSeriesInput,
    SearchSeriesInput,
    UpdateSeriesInput,
)
from .tools.system import GetCalendarInput, SystemStatusInput

logger = logging.getLogger(__name__)

INSTRUCTIONS = """
MCP server for Sonarr TV series management.

Tools:
- add_series / list_series / update_series / remove_series / search_series : library
- list_episodes / search_episodes / monitor_episodes : episodes
- manage_queue / get_history / get_wanted / search_missing_episodes : downloads
- system_status / get_calendar : status and schedule

Resources under sonarr:// give read-only snapshots of the collection,
calendar, queue, history, wanted list and configuration.
"""


def create_client(config: AppConfig) -> SonarrClient:
    return SonarrClient(config.sonarr, max_connections=config.features.max_concurrent_requests)


def create_server(config: AppConfig, client: Optional[SonarrClient] = None) -> Tuple[FastMCP, Registry, SonarrClient]:
    """Build the FastMCP server and the registry behind it.

    Args:
        config: Validated application config
        client: Sonarr client to bind tools to (created from config if omitted)

    Returns:
        (mcp, registry, client)
    """
    client = client or create_client(config)
    registry = build_registry(client, config.features)

    mcp = FastMCP(name=config.server.name, instructions=INSTRUCTIONS)

    async def call(name: str, params: ToolInput) -> str:
        result = await registry.execute_tool(name, params.model_dump(by_alias=True))
        if result.is_error:
            raise ToolError(result.text)
        return result.render()

    # === Series ===

    @mcp.tool()
    async def add_series(params: AddSeriesInput) -> str:
        """Add a new TV series to Sonarr.

        Searches TVDB for the query and adds the first match with the given
        root folder and quality profile (name or ID).
        """
        return await call("add_series", params)

    @mcp.tool()
    async def list_series(params: ListSeriesInput) -> str:
        """List all TV series in Sonarr with optional filtering by monitored flag, status or title."""
        return await call("list_series", params)

    @mcp.tool()
    async def update_series(params: UpdateSeriesInput) -> str:
        """Update series settings like monitoring status or quality profile."""
        return await call("update_series", params)

    @mcp.tool()
    async def remove_series(params: RemoveSeriesInput) -> str:
        """Remove a series from Sonarr, optionally deleting its files."""
        return await call("remove_series", params)

    @mcp.tool()
    async def search_series(params: SearchSeriesInput) -> str:
        """Search for series on TVDB."""
        return await call("search_series", params)

    # === Episodes ===

    @mcp.tool()
    async def list_episodes(params: ListEpisodesInput) -> str:
        """List episodes for a series, optionally filtered by season, monitored flag or file presence."""
        return await call("list_episodes", params)

    @mcp.tool()
    async def search_episodes(params: SearchEpisodesInput) -> str:
        """Start an indexer search for specific episodes."""
        return await call("search_episodes", params)

    @mcp.tool()
    async def monitor_episodes(params: MonitorEpisodesInput) -> str:
        """Set monitoring on or off for a list of episodes."""
        return await call("monitor_episodes", params)

    # === Downloads ===

    @mcp.tool()
    async def manage_queue(params: ManageQueueInput) -> str:
        """View the download queue (action=list) or remove an item (action=remove, queueId)."""
        return await call("manage_queue", params)

    @mcp.tool()
    async def get_history(params: GetHistoryInput) -> str:
        """Get download and import history, paged."""
        return await call("get_history", params)

    @mcp.tool()
    async def search_missing_episodes(params: SearchMissingInput) -> str:
        """Search for missing episodes across all series, one series, or one season of a series."""
        return await call("search_missing_episodes", params)

    @mcp.tool()
    async def get_wanted(params: GetWantedInput) -> str:
        """Get wanted episodes: missing, or below the quality cutoff."""
        return await call("get_wanted", params)

    # === System ===

    @mcp.tool()
    async def system_status() -> str:
        """Get Sonarr version, OS and disk space."""
        return await call("system_status", SystemStatusInput())

    @mcp.tool()
    async def get_calendar(params: GetCalendarInput) -> str:
        """Get the episode calendar between two dates (YYYY-MM-DD)."""
        return await call("get_calendar", params)

    for resource in registry.resources.values():
        _register_resource(mcp, registry, resource)

    return mcp, registry, client


def _register_resource(mcp: FastMCP, registry: Registry, resource: Resource) -> None:
    @mcp.resource(
        resource.uri,
        name=resource.name,
        description=resource.description,
        mime_type=resource.mime_type,
    )
    async def read() -> str:
        result = await registry.read_resource(resource.uri)
        return result.text


def create_app(config: AppConfig, client: Optional[SonarrClient] = None) -> Starlette:
    """Starlette app serving MCP over streamable HTTP plus health and REST routes.

    Startup fails if Sonarr cannot be reached; the client is closed on shutdown.
    """
    mcp, registry, client = create_server(config, client)

    async def check_sonarr() -> dict:
        await client.test_connection()
        return {"sonarr": "healthy"}

    def lifespan(mcp_app):
        @asynccontextmanager
        async def run(app):
            async with mcp_app.lifespan(app):
                try:
                    await client.test_connection()
                    logger.info(f"{config.server.name} started")
                    yield
                finally:
                    await client.aclose()
            logger.info(f"{config.server.name} shutting down")
        return run

    return create_starlette_app(
        mcp,
        registry,
        name=config.server.name,
        version=config.server.version,
        health_check_fn=check_sonarr,
        lifespan=lifespan,
    )


async def run_stdio(config: AppConfig) -> None:
    mcp, _, client = create_server(config)
    async with client:
        await client.test_connection()
        logger.info(f"{config.server.name} started on stdio")
        await mcp.run_async(transport="stdio")


def main():
    """Run the Sonarr MCP server."""
    try:
        config = load_config()
    except ConfigError as e:
        setup_logging("ERROR")
        logger.error(str(e))
        sys.exit(1)

    setup_logging(config.server.log_level)

    if config.server.transport == "stdio":
        asyncio.run(run_stdio(config))
        return

    logger.info(f"Starting {config.server.name} on {config.server.host}:{config.server.port}")
    uvicorn.run(create_app(config), host=config.server.host, port=config.server.port)


if __name__ == "__main__":
    main()

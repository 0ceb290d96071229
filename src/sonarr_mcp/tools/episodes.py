"""Episode listing, search and monitoring tools."""

import logging
from typing import List, Optional

from pydantic import Field

from ..client import SonarrClient
from ..config import FeatureConfig
from ..registry import Tool, ToolInput, ToolResult

logger = logging.getLogger(__name__)


class ListEpisodesInput(ToolInput):
    series_id: int = Field(description="Series ID")
    season_number: Optional[int] = Field(default=None, ge=0, description="Filter by season number")
    monitored: Optional[bool] = Field(default=None, description="Filter by monitoring status")
    has_file: Optional[bool] = Field(default=None, description="Filter by file availability")


class SearchEpisodesInput(ToolInput):
    episode_ids: List[int] = Field(min_length=1, description="Array of episode IDs to search for")


class MonitorEpisodesInput(ToolInput):
    episode_ids: List[int] = Field(min_length=1, description="Array of episode IDs")
    monitored: bool = Field(description="Monitoring status to set")


def get_tools(client: SonarrClient, features: Optional[FeatureConfig] = None) -> List[Tool]:

    async def list_episodes(params: ListEpisodesInput) -> ToolResult:
        episodes = await client.get_episodes_by_series(params.series_id)

        if params.season_number is not None:
            episodes = [e for e in episodes if e.season_number == params.season_number]
        if params.monitored is not None:
            episodes = [e for e in episodes if e.monitored == params.monitored]
        if params.has_file is not None:
            episodes = [e for e in episodes if e.has_file == params.has_file]

        return ToolResult.ok(
            f"Found {len(episodes)} episodes",
            [
                {
                    "id": e.id,
                    "title": e.title,
                    "seasonNumber": e.season_number,
                    "episodeNumber": e.episode_number,
                    "airDate": e.air_date,
                    "hasFile": e.has_file,
                    "monitored": e.monitored,
                }
                for e in episodes
            ],
        )

    async def search_episodes(params: SearchEpisodesInput) -> ToolResult:
        command = await client.search_episodes(params.episode_ids)
        logger.info(f"Episode search queued for {len(params.episode_ids)} episodes")
        return ToolResult.ok(
            f"Started search for {len(params.episode_ids)} episodes",
            {"commandId": command.id, "status": command.status} if command else None,
        )

    async def monitor_episodes(params: MonitorEpisodesInput) -> ToolResult:
        episodes = []
        for episode_id in params.episode_ids:
            episode = await client.get_episode_by_id(episode_id)
            episode.monitored = params.monitored
            episodes.append(episode)

        await client.update_episodes(episodes)

        return ToolResult.ok(
            f"Updated monitoring status for {len(episodes)} episodes to {str(params.monitored).lower()}"
        )

    return [
        Tool(
            name="list_episodes",
            description="List episodes for a specific series",
            input_model=ListEpisodesInput,
            handler=list_episodes,
            action="list episodes",
        ),
        Tool(
            name="search_episodes",
            description="Search for specific episodes",
            input_model=SearchEpisodesInput,
            handler=search_episodes,
            action="search episodes",
        ),
        Tool(
            name="monitor_episodes",
            description="Toggle monitoring for episodes",
            input_model=MonitorEpisodesInput,
            handler=monitor_episodes,
            action="update episode monitoring",
        ),
    ]

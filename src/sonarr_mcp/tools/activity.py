"""Queue, history and wanted-list tools."""

import logging
import math
from typing import List, Literal, Optional

from pydantic import Field

from ..client import SonarrClient
from ..config import FeatureConfig
from ..formatting import download_progress, episode_code
from ..models import PagingResource
from ..registry import Tool, ToolInput, ToolResult

logger = logging.getLogger(__name__)

HistoryEvent = Literal[
    "grabbed",
    "seriesFolderImported",
    "downloadFolderImported",
    "downloadFailed",
    "episodeFileDeleted",
    "episodeFileRenamed",
]


class ManageQueueInput(ToolInput):
    action: Literal["list", "remove"] = Field(description="Action to perform")
    queue_id: Optional[int] = Field(default=None, description="Queue item ID for the remove action")
    remove_from_client: bool = Field(default=True, description="Also remove the download from the download client")
    blocklist: bool = Field(default=False, description="Add the release to the blocklist")


class GetHistoryInput(ToolInput):
    page: int = Field(default=1, ge=1, description="Page number")
    page_size: int = Field(default=20, ge=1, le=1000, description="Items per page")
    series_id: Optional[int] = Field(default=None, description="Filter by series ID")
    event_type: Optional[HistoryEvent] = Field(default=None, description="Filter by event type")


class SearchMissingInput(ToolInput):
    series_id: Optional[int] = Field(default=None, description="Specific series ID to search (optional)")
    season_number: Optional[int] = Field(default=None, ge=0, description="Specific season number (requires seriesId)")


class GetWantedInput(ToolInput):
    type: Literal["missing", "cutoff"] = Field(default="missing", description="Type of wanted episodes")
    page: int = Field(default=1, ge=1, description="Page number")
    page_size: int = Field(default=20, ge=1, le=1000, description="Items per page")


def page_count(paging: PagingResource) -> int:
    if not paging.page_size:
        return 0
    return math.ceil(paging.total_records / paging.page_size)


def _title(ref) -> Optional[str]:
    return ref.title if ref else None


def _quality_name(quality) -> Optional[str]:
    if quality and quality.quality:
        return quality.quality.name
    return None


def get_tools(client: SonarrClient, features: Optional[FeatureConfig] = None) -> List[Tool]:

    async def manage_queue(params: ManageQueueInput) -> ToolResult:
        if params.action == "list":
            queue = await client.get_queue()
            return ToolResult.ok(
                f"Found {len(queue.records)} items in download queue",
                [
                    {
                        "id": item.id,
                        "title": item.title,
                        "series": _title(item.series),
                        "episode": (
                            episode_code(item.episode.season_number, item.episode.episode_number)
                            if item.episode else None
                        ),
                        "quality": _quality_name(item.quality),
                        "status": item.status,
                        "progress": download_progress(item.size, item.size_left),
                        "timeLeft": item.time_left,
                    }
                    for item in queue.records
                ],
            )

        if params.action == "remove" and params.queue_id is not None:
            await client.remove_from_queue(params.queue_id, params.remove_from_client, params.blocklist)
            return ToolResult.ok(f"Removed item {params.queue_id} from queue")

        return ToolResult.error("Invalid action or missing queueId for remove action")

    async def get_history(params: GetHistoryInput) -> ToolResult:
        history = await client.get_history(
            page=params.page,
            page_size=params.page_size,
            series_id=params.series_id,
            event_type=params.event_type,
        )

        records = []
        for item in history.records:
            episode = None
            if item.episode:
                episode = f"{episode_code(item.episode.season_number, item.episode.episode_number)} - {item.episode.title}"
            records.append({
                "id": item.id,
                "eventType": item.event_type,
                "series": _title(item.series),
                "episode": episode,
                "quality": _quality_name(item.quality),
                "date": item.date,
                "sourceTitle": item.source_title,
            })

        return ToolResult.ok(
            f"Found {history.total_records} history items (page {history.page}/{page_count(history)})",
            records,
        )

    async def search_missing_episodes(params: SearchMissingInput) -> ToolResult:
        if params.series_id is None:
            await client.search_all_missing()
            return ToolResult.ok("Started search for all missing episodes across all series")

        if params.season_number is None:
            await client.search_series_missing(params.series_id)
            return ToolResult.ok(f"Started search for missing episodes in series ID {params.series_id}")

        episodes = await client.get_episodes_by_series(params.series_id)
        missing = [
            e for e in episodes
            if e.season_number == params.season_number and not e.has_file and e.monitored
        ]
        if not missing:
            return ToolResult.ok(f"No missing episodes found in season {params.season_number}")

        await client.search_episodes([e.id for e in missing])
        return ToolResult.ok(
            f"Started search for {len(missing)} missing episodes in season {params.season_number}"
        )

    async def get_wanted(params: GetWantedInput) -> ToolResult:
        if params.type == "cutoff":
            wanted = await client.get_wanted_cutoff_unmet(page=params.page, page_size=params.page_size)
        else:
            wanted = await client.get_wanted_missing(page=params.page, page_size=params.page_size)

        return ToolResult.ok(
            f"Found {wanted.total_records} wanted episodes ({params.type}) - page {wanted.page}/{page_count(wanted)}",
            [
                {
                    "id": item.id,
                    "series": _title(item.series),
                    "episode": f"{episode_code(item.season_number, item.episode_number)} - {item.title}",
                    "airDate": item.air_date,
                    "monitored": item.monitored,
                }
                for item in wanted.records
            ],
        )

    return [
        Tool(
            name="manage_queue",
            description="View and manage the download queue",
            input_model=ManageQueueInput,
            handler=manage_queue,
            action="manage queue",
        ),
        Tool(
            name="get_history",
            description="Get download and import history",
            input_model=GetHistoryInput,
            handler=get_history,
            action="get history",
        ),
        Tool(
            name="search_missing_episodes",
            description="Search for missing episodes across all or specific series",
            input_model=SearchMissingInput,
            handler=search_missing_episodes,
            action="search for missing episodes",
        ),
        Tool(
            name="get_wanted",
            description="Get wanted/missing episodes",
            input_model=GetWantedInput,
            handler=get_wanted,
            action="get wanted episodes",
        ),
    ]

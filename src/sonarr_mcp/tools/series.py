"""Sonarr series management tools."""

import logging
from typing import List, Literal, Optional, Union

from pydantic import Field

from ..client import SonarrApiError, SonarrClient
from ..config import FeatureConfig
from ..formatting import bytes_to_gb, truncate
from ..models import QualityProfile, Series
from ..registry import Tool, ToolInput, ToolResult

logger = logging.getLogger(__name__)

# Used when Sonarr has no language profiles (v4 dropped them)
DEFAULT_LANGUAGE_PROFILE_ID = 1


class AddSeriesInput(ToolInput):
    query: str = Field(min_length=1, description="Series name, TVDB ID, or IMDB ID to search for")
    root_folder: str = Field(min_length=1, description="Root folder path where the series will be stored")
    quality_profile: Union[int, str] = Field(description="Quality profile name or ID")
    monitor: Literal["all", "future", "missing", "existing", "none"] = Field(
        default="all", description="Monitoring mode for the series"
    )
    search_for_missing_episodes: bool = Field(
        default=False, description="Whether to search for missing episodes after adding"
    )
    season_folder: bool = Field(default=True, description="Use season folders")


class ListSeriesInput(ToolInput):
    monitored: Optional[bool] = Field(default=None, description="Filter by monitoring status")
    status: Optional[Literal["continuing", "ended", "upcoming", "deleted"]] = Field(
        default=None, description="Filter by series status"
    )
    search: Optional[str] = Field(default=None, description="Search term to filter series by title")


class UpdateSeriesInput(ToolInput):
    series_id: int = Field(description="Series ID to update")
    monitored: Optional[bool] = Field(default=None, description="Update monitoring status")
    quality_profile_id: Optional[int] = Field(default=None, description="New quality profile ID")
    season_folder: Optional[bool] = Field(default=None, description="Use season folders")


class RemoveSeriesInput(ToolInput):
    series_id: int = Field(description="Series ID to remove")
    delete_files: bool = Field(default=False, description="Delete files from disk")
    add_import_list_exclusion: bool = Field(
        default=False, description="Prevent import lists from adding the series again"
    )


class SearchSeriesInput(ToolInput):
    query: str = Field(min_length=1, description="Search term")


def resolve_quality_profile(value: Union[int, str], profiles: List[QualityProfile]) -> Optional[int]:
    """Numeric values are IDs; anything else is matched by name, ignoring case."""
    try:
        return int(str(value).strip())
    except ValueError:
        pass
    wanted = str(value).lower()
    for profile in profiles:
        if profile.name.lower() == wanted:
            return profile.id
    return None


async def _language_profile_id(client: SonarrClient) -> int:
    try:
        profiles = await client.get_language_profiles()
    except SonarrApiError as e:
        if e.status_code is None or e.status_code >= 500:
            raise
        logger.debug(f"No language profiles available ({e.message}), using default")
        return DEFAULT_LANGUAGE_PROFILE_ID
    return profiles[0].id if profiles else DEFAULT_LANGUAGE_PROFILE_ID


def series_summary(series: Series) -> dict:
    return {
        "id": series.id,
        "title": series.title,
        "year": series.year,
        "status": series.status,
        "monitored": series.monitored,
        "seasonCount": series.season_count,
        "episodeCount": series.episode_count,
        "episodeFileCount": series.episode_file_count,
        "sizeOnDiskGB": bytes_to_gb(series.size_on_disk),
        "nextAiring": series.next_airing,
        "network": series.network,
    }


def filter_series(
    series: List[Series],
    monitored: Optional[bool] = None,
    status: Optional[str] = None,
    search: Optional[str] = None,
) -> List[Series]:
    """Apply the optional filters in order; every given filter must match."""
    if monitored is not None:
        series = [s for s in series if s.monitored == monitored]
    if status:
        series = [s for s in series if s.status == status]
    if search:
        needle = search.lower()
        series = [s for s in series if needle in s.title.lower()]
    return series


def get_tools(client: SonarrClient, features: Optional[FeatureConfig] = None) -> List[Tool]:
    """Series tools bound to `client`."""

    async def add_series(params: AddSeriesInput) -> ToolResult:
        results = await client.search_series(params.query)
        if not results:
            return ToolResult.error(f'No series found matching "{params.query}"')

        match = results[0]

        profiles = await client.get_quality_profiles()
        quality_profile_id = resolve_quality_profile(params.quality_profile, profiles)
        if quality_profile_id is None:
            names = ", ".join(p.name for p in profiles)
            return ToolResult.error(
                f'Quality profile "{params.quality_profile}" not found. Available profiles: {names}'
            )

        body = {
            "title": match.title,
            "titleSlug": match.title_slug,
            "tvdbId": match.tvdb_id,
            "qualityProfileId": quality_profile_id,
            "languageProfileId": await _language_profile_id(client),
            "rootFolderPath": params.root_folder,
            "monitored": True,
            "seasonFolder": params.season_folder,
            "addOptions": {
                "monitor": params.monitor,
                "searchForMissingEpisodes": params.search_for_missing_episodes,
            },
        }
        if match.imdb_id:
            body["imdbId"] = match.imdb_id
        if match.tmdb_id:
            body["tmdbId"] = match.tmdb_id

        added = await client.add_series(body)
        logger.info(f"Added series {added.title} (id={added.id})")

        return ToolResult.ok(
            f"Successfully added series: {added.title} ({added.year})",
            {
                "id": added.id,
                "title": added.title,
                "year": added.year,
                "path": added.path,
                "monitored": added.monitored,
                "seasonCount": added.season_count,
            },
        )

    async def list_series(params: ListSeriesInput) -> ToolResult:
        series = filter_series(await client.get_series(), params.monitored, params.status, params.search)

        text = f"Found {len(series)} series"
        if params.monitored is not None:
            text += f" (monitored: {str(params.monitored).lower()})"
        if params.status:
            text += f" (status: {params.status})"
        if params.search:
            text += f' (search: "{params.search}")'

        return ToolResult.ok(text, [series_summary(s) for s in series])

    async def update_series(params: UpdateSeriesInput) -> ToolResult:
        # Read-modify-write without a concurrency token: a concurrent edit
        # made in Sonarr between the GET and the PUT is overwritten.
        series = await client.get_series_by_id(params.series_id)

        if params.monitored is not None:
            series.monitored = params.monitored
        if params.quality_profile_id is not None:
            series.quality_profile_id = params.quality_profile_id
        if params.season_folder is not None:
            series.season_folder = params.season_folder

        updated = await client.update_series(series)

        return ToolResult.ok(
            f"Successfully updated series: {updated.title}",
            {
                "id": updated.id,
                "title": updated.title,
                "monitored": updated.monitored,
                "qualityProfileId": updated.quality_profile_id,
                "seasonFolder": updated.season_folder,
            },
        )

    async def remove_series(params: RemoveSeriesInput) -> ToolResult:
        if params.delete_files and features is not None and not features.enable_file_operations:
            return ToolResult.error(
                "Deleting files is disabled (set ENABLE_FILE_OPERATIONS=true to allow it)"
            )

        series = await client.get_series_by_id(params.series_id)
        await client.delete_series(params.series_id, params.delete_files, params.add_import_list_exclusion)

        suffix = " (files deleted)" if params.delete_files else ""
        return ToolResult.ok(f"Successfully removed series: {series.title}{suffix}")

    async def search_series(params: SearchSeriesInput) -> ToolResult:
        results = await client.search_series(params.query)
        return ToolResult.ok(
            f'Found {len(results)} series matching "{params.query}"',
            [
                {
                    "tvdbId": r.tvdb_id,
                    "title": r.title,
                    "year": r.year,
                    "network": r.network,
                    "overview": truncate(r.overview),
                }
                for r in results
            ],
        )

    return [
        Tool(
            name="add_series",
            description="Add a new TV series to Sonarr",
            input_model=AddSeriesInput,
            handler=add_series,
            action="add series",
        ),
        Tool(
            name="list_series",
            description="List all TV series in Sonarr with optional filtering",
            input_model=ListSeriesInput,
            handler=list_series,
            action="list series",
        ),
        Tool(
            name="update_series",
            description="Update series settings like monitoring status or quality profile",
            input_model=UpdateSeriesInput,
            handler=update_series,
            action="update series",
        ),
        Tool(
            name="remove_series",
            description="Remove a series from Sonarr",
            input_model=RemoveSeriesInput,
            handler=remove_series,
            action="remove series",
        ),
        Tool(
            name="search_series",
            description="Search for series on TVDB",
            input_model=SearchSeriesInput,
            handler=search_series,
            action="search series",
        ),
    ]

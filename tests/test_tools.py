"""Tests for the MCP tools."""

import pytest

from sonarr_mcp.catalog import build_registry
from sonarr_mcp.client import SonarrApiError
from sonarr_mcp.config import FeatureConfig
from sonarr_mcp.models import (
    CalendarItem,
    Command,
    Episode,
    HistoryItem,
    PagingResource,
    QueueItem,
    Series,
    SeriesLookup,
    WantedEpisode,
)
from sonarr_mcp.registry import ToolNotFoundError

TOOL_NAMES = [
    "add_series",
    "list_series",
    "update_series",
    "remove_series",
    "search_series",
    "list_episodes",
    "search_episodes",
    "monitor_episodes",
    "manage_queue",
    "get_history",
    "search_missing_episodes",
    "get_wanted",
    "system_status",
    "get_calendar",
]


@pytest.fixture
def registry(mock_client):
    return build_registry(mock_client)


def test_catalog(registry):
    assert list(registry.tools) == TOOL_NAMES
    for tool in registry.list_tools():
        assert tool["description"]
        assert tool["inputSchema"]["type"] == "object"


def test_input_schema_uses_camel_case(registry):
    schema = registry.get_tool("add_series").input_schema
    assert set(schema["required"]) == {"query", "rootFolder", "qualityProfile"}
    assert "searchForMissingEpisodes" in schema["properties"]


@pytest.mark.asyncio
async def test_unknown_tool_raises(registry):
    with pytest.raises(ToolNotFoundError, match="Tool not found: delete_everything"):
        await registry.execute_tool("delete_everything", {})


# === list_series ===

@pytest.mark.asyncio
async def test_list_series_monitored_filter(registry):
    result = await registry.execute_tool("list_series", {"monitored": True})

    assert not result.is_error
    assert result.text == "Found 1 series (monitored: true)"
    assert [s["title"] for s in result.data] == ["Breaking Bad"]
    assert result.data[0]["sizeOnDiskGB"] == 2.0


@pytest.mark.asyncio
async def test_list_series_filters_combine(registry):
    result = await registry.execute_tool("list_series", {"monitored": True, "search": "expanse"})

    assert result.text == 'Found 0 series (monitored: true) (search: "expanse")'
    assert result.data == []


@pytest.mark.asyncio
async def test_list_series_status_and_search(registry):
    result = await registry.execute_tool("list_series", {"status": "continuing", "search": "EXPANSE"})

    assert [s["id"] for s in result.data] == [2]


@pytest.mark.asyncio
async def test_list_series_client_failure(registry, mock_client):
    mock_client.get_series.side_effect = SonarrApiError("No response from server")

    result = await registry.execute_tool("list_series", {})

    assert result.is_error
    assert result.text == "Failed to list series: No response from server"


# === add_series ===

@pytest.mark.asyncio
async def test_add_series_by_profile_name(registry, mock_client):
    mock_client.add_series.return_value = Series(
        id=3, title="The Wire", year=2002, path="/tv/The Wire", monitored=True, season_count=5,
    )

    result = await registry.execute_tool("add_series", {
        "query": "The Wire", "rootFolder": "/tv", "qualityProfile": "hd-1080p",
    })

    assert not result.is_error
    assert result.text == "Successfully added series: The Wire (2002)"
    body = mock_client.add_series.await_args.args[0]
    assert body["tvdbId"] == 79126
    assert body["imdbId"] == "tt0306414"
    assert body["qualityProfileId"] == 4
    assert body["languageProfileId"] == 1
    assert body["rootFolderPath"] == "/tv"
    assert body["addOptions"] == {"monitor": "all", "searchForMissingEpisodes": False}


@pytest.mark.asyncio
async def test_add_series_by_profile_id(registry, mock_client):
    mock_client.add_series.return_value = Series(id=3, title="The Wire")

    await registry.execute_tool("add_series", {"query": "The Wire", "rootFolder": "/tv", "qualityProfile": 6})

    assert mock_client.add_series.await_args.args[0]["qualityProfileId"] == 6


@pytest.mark.asyncio
async def test_add_series_language_profile_unavailable(registry, mock_client):
    mock_client.get_language_profiles.side_effect = SonarrApiError("Not Found", 404)
    mock_client.add_series.return_value = Series(id=3, title="The Wire")

    result = await registry.execute_tool("add_series", {
        "query": "The Wire", "rootFolder": "/tv", "qualityProfile": 4,
    })

    assert not result.is_error
    assert mock_client.add_series.await_args.args[0]["languageProfileId"] == 1


@pytest.mark.asyncio
async def test_add_series_no_results(registry, mock_client):
    mock_client.search_series.return_value = []

    result = await registry.execute_tool("add_series", {
        "query": "Nonexistent Show", "rootFolder": "/tv", "qualityProfile": "HD-1080p",
    })

    assert result.is_error
    assert 'No series found matching "Nonexistent Show"' in result.text
    mock_client.add_series.assert_not_awaited()


@pytest.mark.asyncio
async def test_add_series_unknown_profile(registry, mock_client):
    result = await registry.execute_tool("add_series", {
        "query": "The Wire", "rootFolder": "/tv", "qualityProfile": "SD",
    })

    assert result.is_error
    assert result.text == 'Quality profile "SD" not found. Available profiles: HD-1080p, Ultra-HD'
    mock_client.add_series.assert_not_awaited()


@pytest.mark.asyncio
async def test_add_series_missing_arguments(registry, mock_client):
    result = await registry.execute_tool("add_series", {"query": "The Wire"})

    assert result.is_error
    assert result.text.startswith("Invalid arguments for add_series:")
    assert "rootFolder" in result.text
    mock_client.search_series.assert_not_awaited()


@pytest.mark.asyncio
@pytest.mark.parametrize("arguments", ["abc", ["x"], 5])
async def test_tool_rejects_non_object_arguments(registry, mock_client, arguments):
    result = await registry.execute_tool("list_series", arguments)

    assert result.is_error
    assert result.text == "Invalid arguments for list_series: arguments must be an object"
    mock_client.get_series.assert_not_awaited()


# === update_series / remove_series / search_series ===

@pytest.mark.asyncio
async def test_update_series_applies_changes(registry, mock_client):
    series = Series(id=1, title="Breaking Bad", monitored=True, quality_profile_id=4)
    mock_client.get_series_by_id.return_value = series
    mock_client.update_series.side_effect = lambda s: s

    result = await registry.execute_tool("update_series", {"seriesId": 1, "monitored": False})

    assert result.text == "Successfully updated series: Breaking Bad"
    sent = mock_client.update_series.await_args.args[0]
    assert sent.monitored is False
    assert sent.quality_profile_id == 4


@pytest.mark.asyncio
async def test_remove_series(registry, mock_client):
    mock_client.get_series_by_id.return_value = Series(id=1, title="Breaking Bad")

    result = await registry.execute_tool("remove_series", {"seriesId": 1})

    assert result.text == "Successfully removed series: Breaking Bad"
    mock_client.delete_series.assert_awaited_once_with(1, False, False)


@pytest.mark.asyncio
async def test_remove_series_file_deletion_disabled(mock_client):
    registry = build_registry(mock_client, FeatureConfig(enable_file_operations=False))

    result = await registry.execute_tool("remove_series", {"seriesId": 1, "deleteFiles": True})

    assert result.is_error
    assert "ENABLE_FILE_OPERATIONS" in result.text
    mock_client.delete_series.assert_not_awaited()


@pytest.mark.asyncio
async def test_remove_series_file_deletion_enabled(mock_client):
    registry = build_registry(mock_client, FeatureConfig(enable_file_operations=True))
    mock_client.get_series_by_id.return_value = Series(id=1, title="Breaking Bad")

    result = await registry.execute_tool("remove_series", {"seriesId": 1, "deleteFiles": True})

    assert result.text == "Successfully removed series: Breaking Bad (files deleted)"
    mock_client.delete_series.assert_awaited_once_with(1, True, False)


@pytest.mark.asyncio
async def test_search_series_truncates_overview(registry, mock_client):
    mock_client.search_series.return_value = [
        SeriesLookup(title="Long", tvdb_id=1, overview="x" * 250),
        SeriesLookup(title="Short", tvdb_id=2, overview="short"),
    ]

    result = await registry.execute_tool("search_series", {"query": "test"})

    assert result.text == 'Found 2 series matching "test"'
    assert result.data[0]["overview"] == "x" * 200 + "..."
    assert result.data[1]["overview"] == "short"


# === episodes ===

@pytest.mark.asyncio
async def test_list_episodes_filters(registry):
    result = await registry.execute_tool("list_episodes", {"seriesId": 1, "seasonNumber": 1, "hasFile": False})

    assert result.text == "Found 2 episodes"
    assert [e["id"] for e in result.data] == [102, 103]


@pytest.mark.asyncio
async def test_search_episodes(registry, mock_client):
    mock_client.search_episodes.return_value = Command(id=5, status="queued")

    result = await registry.execute_tool("search_episodes", {"episodeIds": [1, 2, 3]})

    assert result.text == "Started search for 3 episodes"
    mock_client.search_episodes.assert_awaited_once_with([1, 2, 3])


@pytest.mark.asyncio
async def test_search_episodes_requires_ids(registry, mock_client):
    result = await registry.execute_tool("search_episodes", {"episodeIds": []})

    assert result.is_error
    mock_client.search_episodes.assert_not_awaited()


@pytest.mark.asyncio
async def test_monitor_episodes(registry, mock_client):
    mock_client.get_episode_by_id.side_effect = lambda i: Episode(id=i, monitored=True)

    result = await registry.execute_tool("monitor_episodes", {"episodeIds": [1, 2], "monitored": False})

    assert result.text == "Updated monitoring status for 2 episodes to false"
    sent = mock_client.update_episodes.await_args.args[0]
    assert [(e.id, e.monitored) for e in sent] == [(1, False), (2, False)]


# === search_missing_episodes ===

@pytest.mark.asyncio
async def test_search_missing_all(registry, mock_client):
    result = await registry.execute_tool("search_missing_episodes", {})

    assert result.text == "Started search for all missing episodes across all series"
    mock_client.search_all_missing.assert_awaited_once()


@pytest.mark.asyncio
async def test_search_missing_series(registry, mock_client):
    result = await registry.execute_tool("search_missing_episodes", {"seriesId": 1})

    assert result.text == "Started search for missing episodes in series ID 1"
    mock_client.search_series_missing.assert_awaited_once_with(1)


@pytest.mark.asyncio
async def test_search_missing_season(registry, mock_client):
    result = await registry.execute_tool("search_missing_episodes", {"seriesId": 1, "seasonNumber": 1})

    assert result.text == "Started search for 1 missing episodes in season 1"
    mock_client.search_episodes.assert_awaited_once_with([102])


@pytest.mark.asyncio
async def test_search_missing_season_none_found(registry, mock_client):
    result = await registry.execute_tool("search_missing_episodes", {"seriesId": 1, "seasonNumber": 0})

    assert not result.is_error
    assert result.text == "No missing episodes found in season 0"
    mock_client.search_episodes.assert_not_awaited()


# === manage_queue ===

@pytest.mark.asyncio
async def test_manage_queue_list_progress(registry):
    result = await registry.execute_tool("manage_queue", {"action": "list"})

    assert result.text == "Found 1 items in download queue"
    item = result.data[0]
    assert item["progress"] == 80
    assert item["episode"] == "S01E01"
    assert item["series"] == "The Wire"
    assert item["quality"] == "Bluray-1080p"
    assert item["timeLeft"] == "00:10:00"


@pytest.mark.asyncio
async def test_manage_queue_list_unknown_size(registry, mock_client):
    mock_client.get_queue.return_value = PagingResource[QueueItem](
        page=1, page_size=20, total_records=2,
        records=[
            QueueItem.model_validate({"id": 8, "title": "Pending.S01E02", "size": 0, "sizeleft": 0}),
            QueueItem.model_validate({"id": 9, "title": "Grabbed.S01E03", "size": None, "sizeleft": None}),
        ],
    )

    result = await registry.execute_tool("manage_queue", {"action": "list"})

    assert result.text == "Found 2 items in download queue"
    assert [item["progress"] for item in result.data] == ["Unknown", "Unknown"]


@pytest.mark.asyncio
async def test_manage_queue_remove(registry, mock_client):
    result = await registry.execute_tool("manage_queue", {"action": "remove", "queueId": 7, "blocklist": True})

    assert result.text == "Removed item 7 from queue"
    mock_client.remove_from_queue.assert_awaited_once_with(7, True, True)


@pytest.mark.asyncio
async def test_manage_queue_remove_without_id(registry, mock_client):
    result = await registry.execute_tool("manage_queue", {"action": "remove"})

    assert result.is_error
    assert result.text == "Invalid action or missing queueId for remove action"
    mock_client.remove_from_queue.assert_not_awaited()


# === history / wanted ===

@pytest.mark.asyncio
async def test_get_history(registry, mock_client):
    mock_client.get_history.return_value = PagingResource[HistoryItem](
        page=2, page_size=20, total_records=45,
        records=[HistoryItem.model_validate({
            "id": 1,
            "eventType": "grabbed",
            "series": {"title": "The Wire"},
            "episode": {"seasonNumber": 1, "episodeNumber": 2, "title": "The Detail"},
            "quality": {"quality": {"name": "HDTV-720p"}},
            "sourceTitle": "The.Wire.S01E02.720p",
        })],
    )

    result = await registry.execute_tool("get_history", {"page": 2, "eventType": "grabbed"})

    assert result.text == "Found 45 history items (page 2/3)"
    assert result.data[0]["episode"] == "S01E02 - The Detail"
    mock_client.get_history.assert_awaited_once_with(page=2, page_size=20, series_id=None, event_type="grabbed")


@pytest.mark.asyncio
async def test_get_wanted_cutoff(registry, mock_client):
    mock_client.get_wanted_cutoff_unmet.return_value = PagingResource[WantedEpisode](
        page=1, page_size=20, total_records=1,
        records=[WantedEpisode.model_validate({
            "id": 9, "seasonNumber": 3, "episodeNumber": 4, "title": "Hamsterdam",
            "series": {"title": "The Wire"}, "monitored": True,
        })],
    )

    result = await registry.execute_tool("get_wanted", {"type": "cutoff"})

    assert result.text == "Found 1 wanted episodes (cutoff) - page 1/1"
    assert result.data[0]["episode"] == "S03E04 - Hamsterdam"
    mock_client.get_wanted_missing.assert_not_awaited()


# === system ===

@pytest.mark.asyncio
async def test_system_status_disk_space(registry):
    result = await registry.execute_tool("system_status", {})

    assert result.text == "Sonarr 3.0.10.1567 running on ubuntu 22.04"
    disk = result.data["diskSpace"][0]
    assert disk["freeSpaceGB"] == 465.66
    assert disk["totalSpaceGB"] == 931.32
    assert disk["percentFree"] == 50


@pytest.mark.asyncio
async def test_get_calendar(registry, mock_client):
    mock_client.get_calendar.return_value = [
        CalendarItem.model_validate({
            "id": 1, "seasonNumber": 2, "episodeNumber": 5, "title": "Pilot",
            "airDate": "2024-05-01", "series": {"title": "Shogun", "network": "FX"},
        }),
    ]

    result = await registry.execute_tool("get_calendar", {"start": "2024-05-01", "end": "2024-05-31"})

    assert result.text == "Found 1 upcoming episodes"
    assert result.data[0]["episode"] == "S02E05 - Pilot"
    assert result.data[0]["network"] == "FX"
    mock_client.get_calendar.assert_awaited_once_with("2024-05-01", "2024-05-31", False)


@pytest.mark.asyncio
async def test_get_calendar_rejects_bad_date(registry, mock_client):
    result = await registry.execute_tool("get_calendar", {"start": "May 1st"})

    assert result.is_error
    mock_client.get_calendar.assert_not_awaited()

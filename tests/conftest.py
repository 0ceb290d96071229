"""Shared fixtures."""

from unittest.mock import AsyncMock

import httpx
import pytest

from sonarr_mcp.client import SonarrClient
from sonarr_mcp.config import ConnectionConfig
from sonarr_mcp.models import (
    DiskSpace,
    Episode,
    PagingResource,
    QualityProfile,
    QueueItem,
    Series,
    SeriesLookup,
    SystemStatus,
)

SONARR_URL = "http://sonarr.local:8989"


@pytest.fixture
def connection_config():
    return ConnectionConfig(base_url=SONARR_URL, api_key="test-key", max_retries=3)


@pytest.fixture
def make_client(connection_config):
    """Build a real SonarrClient whose requests are answered by `handler`."""

    def _make(handler, **overrides):
        config = connection_config.model_copy(update=overrides)
        return SonarrClient(config, transport=httpx.MockTransport(handler))

    return _make


@pytest.fixture
def mock_client():
    """Stand-in client for tool and resource tests."""
    client = AsyncMock(spec=SonarrClient)
    client.get_series.return_value = [
        Series(id=1, title="Breaking Bad", year=2008, status="ended", monitored=True,
               season_count=5, episode_count=62, episode_file_count=62, size_on_disk=2 * 1024 ** 3),
        Series(id=2, title="The Expanse", year=2015, status="continuing", monitored=False,
               season_count=6, episode_count=62, episode_file_count=40, size_on_disk=1024 ** 3),
    ]
    client.search_series.return_value = [
        SeriesLookup(title="The Wire", title_slug="the-wire", year=2002, tvdb_id=79126, imdb_id="tt0306414"),
    ]
    client.get_quality_profiles.return_value = [
        QualityProfile(id=4, name="HD-1080p"),
        QualityProfile(id=6, name="Ultra-HD"),
    ]
    client.get_language_profiles.return_value = []
    client.get_system_status.return_value = SystemStatus(
        version="3.0.10.1567", os_name="ubuntu", os_version="22.04",
        runtime_name="netCore", runtime_version="6.0.0", start_time="2024-01-01T00:00:00Z",
    )
    client.get_disk_space.return_value = [
        DiskSpace(path="/tv", label="tv", free_space=500_000_000_000, total_space=1_000_000_000_000),
    ]
    client.get_queue.return_value = PagingResource[QueueItem](
        page=1, page_size=20, total_records=1,
        records=[QueueItem.model_validate({
            "id": 7,
            "title": "The.Wire.S01E01.1080p",
            "size": 1_000_000_000,
            "sizeleft": 200_000_000,
            "timeleft": "00:10:00",
            "status": "downloading",
            "series": {"id": 3, "title": "The Wire"},
            "episode": {"id": 30, "seasonNumber": 1, "episodeNumber": 1, "title": "The Target"},
            "quality": {"quality": {"id": 7, "name": "Bluray-1080p", "source": "bluray"}},
        })],
    )
    client.get_episodes_by_series.return_value = [
        Episode(id=101, series_id=1, season_number=1, episode_number=1, has_file=True, monitored=True),
        Episode(id=102, series_id=1, season_number=1, episode_number=2, has_file=False, monitored=True),
        Episode(id=103, series_id=1, season_number=1, episode_number=3, has_file=False, monitored=False),
        Episode(id=201, series_id=1, season_number=2, episode_number=1, has_file=False, monitored=True),
    ]
    return client

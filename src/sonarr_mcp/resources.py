"""Read-only MCP resources describing the Sonarr installation.

Every read goes to Sonarr; nothing is cached between reads.
"""

import asyncio
import math
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from .client import SonarrClient
from .formatting import bytes_to_gb, download_progress, parse_timestamp, percent_free
from .models import Quality, QualityModel, QualityProfileItem
from .registry import Resource

CALENDAR_DAYS = 30
QUEUE_PAGE_SIZE = 100
HISTORY_PAGE_SIZE = 50
WANTED_PAGE_SIZE = 100


def _quality(quality: Optional[Quality]) -> Optional[Dict[str, Any]]:
    if quality is None:
        return None
    return {
        "id": quality.id,
        "name": quality.name,
        "source": quality.source,
        "resolution": quality.resolution,
    }


def _quality_ref(model: Optional[QualityModel]) -> Optional[Dict[str, Any]]:
    if model is None or model.quality is None:
        return None
    return {"name": model.quality.name, "source": model.quality.source}


def _ref(obj, *fields: str) -> Optional[Dict[str, Any]]:
    if obj is None:
        return None
    return {field: getattr(obj, field) for field in fields}


def _episode_ref(episode) -> Optional[Dict[str, Any]]:
    if episode is None:
        return None
    return {
        "id": episode.id,
        "title": episode.title,
        "seasonNumber": episode.season_number,
        "episodeNumber": episode.episode_number,
    }


def _profile_item(item: QualityProfileItem, nested: bool = True) -> Dict[str, Any]:
    data = {"quality": _quality(item.quality), "allowed": item.allowed}
    if nested:
        data["items"] = [_profile_item(sub, nested=False) for sub in item.items]
    return data


def uptime_ms(start_time: Optional[str], now: Optional[datetime] = None) -> Optional[int]:
    """Milliseconds since `start_time`, or None if it cannot be parsed."""
    started = parse_timestamp(start_time)
    if started is None:
        return None
    now = now or datetime.now(timezone.utc)
    return int((now - started).total_seconds() * 1000)


def get_resources(client: SonarrClient) -> List[Resource]:
    """All resources bound to `client`."""

    async def series_collection():
        series = await client.get_series()
        return {
            "totalSeries": len(series),
            "monitoredSeries": sum(1 for s in series if s.monitored),
            "continuingSeries": sum(1 for s in series if s.status == "continuing"),
            "endedSeries": sum(1 for s in series if s.status == "ended"),
            "totalEpisodes": sum(s.episode_count for s in series),
            "totalFiles": sum(s.episode_file_count for s in series),
            "totalSizeGB": bytes_to_gb(sum(s.size_on_disk for s in series)),
            "series": [
                {
                    "id": s.id,
                    "title": s.title,
                    "year": s.year,
                    "status": s.status,
                    "monitored": s.monitored,
                    "network": s.network,
                    "seasonCount": s.season_count,
                    "episodeCount": s.episode_count,
                    "episodeFileCount": s.episode_file_count,
                    "sizeOnDisk": s.size_on_disk,
                    "nextAiring": s.next_airing,
                    "previousAiring": s.previous_airing,
                    "path": s.path,
                    "qualityProfileId": s.quality_profile_id,
                    "genres": s.genres,
                    "overview": s.overview,
                }
                for s in series
            ],
        }

    async def upcoming_calendar():
        today = datetime.now(timezone.utc).date()
        start = today.isoformat()
        end = (today + timedelta(days=CALENDAR_DAYS)).isoformat()
        calendar = await client.get_calendar(start, end)
        return {
            "dateRange": {"start": start, "end": end},
            "totalEpisodes": len(calendar),
            "monitoredEpisodes": sum(1 for e in calendar if e.monitored),
            "episodesWithFiles": sum(1 for e in calendar if e.has_file),
            "episodes": [
                {
                    "id": e.id,
                    "seriesId": e.series_id,
                    "seriesTitle": e.series.title if e.series else None,
                    "episodeTitle": e.title,
                    "seasonNumber": e.season_number,
                    "episodeNumber": e.episode_number,
                    "airDate": e.air_date,
                    "airDateUtc": e.air_date_utc,
                    "hasFile": e.has_file,
                    "monitored": e.monitored,
                    "network": e.series.network if e.series else None,
                    "overview": e.overview,
                }
                for e in calendar
            ],
        }

    async def system_status():
        status, disks = await asyncio.gather(client.get_system_status(), client.get_disk_space())
        return {
            "version": status.version,
            "buildTime": status.build_time,
            "startTime": status.start_time,
            "uptime": uptime_ms(status.start_time),
            "os": {
                "name": status.os_name,
                "version": status.os_version,
                "isLinux": status.is_linux,
                "isWindows": status.is_windows,
                "isMac": status.is_osx,
            },
            "runtime": {
                "name": status.runtime_name,
                "version": status.runtime_version,
                "isMono": status.is_mono,
            },
            "paths": {
                "startupPath": status.startup_path,
                "appData": status.app_data,
                "urlBase": status.url_base,
            },
            "database": {
                "sqliteVersion": status.sqlite_version,
                "migrationVersion": status.migration_version,
            },
            "diskSpace": [
                {
                    "path": disk.path,
                    "label": disk.label,
                    "freeSpaceBytes": disk.free_space,
                    "totalSpaceBytes": disk.total_space,
                    "freeSpaceGB": bytes_to_gb(disk.free_space),
                    "totalSpaceGB": bytes_to_gb(disk.total_space),
                    "percentFree": percent_free(disk.free_space, disk.total_space),
                }
                for disk in disks
            ],
            "authentication": status.authentication,
            "isDebug": status.is_debug,
            "isProduction": status.is_production,
            "branch": status.branch,
        }

    async def current_queue():
        queue = await client.get_queue(page=1, page_size=QUEUE_PAGE_SIZE)
        return {
            "totalItems": queue.total_records,
            "totalPages": math.ceil(queue.total_records / queue.page_size) if queue.page_size else 0,
            "items": [
                {
                    "id": item.id,
                    "title": item.title,
                    "series": _ref(item.series, "id", "title"),
                    "episode": _episode_ref(item.episode),
                    "quality": _quality_ref(item.quality),
                    "size": item.size,
                    "sizeLeft": item.size_left,
                    "status": item.status,
                    "trackedDownloadStatus": item.tracked_download_status,
                    "trackedDownloadState": item.tracked_download_state,
                    "progress": download_progress(item.size, item.size_left, unknown=0),
                    "timeLeft": item.time_left,
                    "estimatedCompletionTime": item.estimated_completion_time,
                    "protocol": item.protocol,
                    "downloadClient": item.download_client,
                    "indexer": item.indexer,
                    "downloadId": item.download_id,
                    "errorMessage": item.error_message,
                    "statusMessages": [m.to_api() for m in item.status_messages],
                }
                for item in queue.records
            ],
        }

    async def recent_history():
        history = await client.get_history(page=1, page_size=HISTORY_PAGE_SIZE)
        return {
            "totalItems": history.total_records,
            "items": [
                {
                    "id": item.id,
                    "eventType": item.event_type,
                    "date": item.date,
                    "series": _ref(item.series, "id", "title"),
                    "episode": _episode_ref(item.episode),
                    "quality": _quality_ref(item.quality),
                    "sourceTitle": item.source_title,
                    "downloadId": item.download_id,
                    "customFormats": [cf.name for cf in item.custom_formats],
                    "qualityCutoffNotMet": item.quality_cutoff_not_met,
                    "customFormatScore": item.custom_format_score,
                    "data": item.data,
                }
                for item in history.records
            ],
        }

    async def wanted_missing():
        wanted = await client.get_wanted_missing(page=1, page_size=WANTED_PAGE_SIZE)
        return {
            "totalMissing": wanted.total_records,
            "episodes": [
                {
                    "id": e.id,
                    "seriesId": e.series_id,
                    "seriesTitle": e.series.title if e.series else None,
                    "episodeTitle": e.title,
                    "seasonNumber": e.season_number,
                    "episodeNumber": e.episode_number,
                    "airDate": e.air_date,
                    "airDateUtc": e.air_date_utc,
                    "monitored": e.monitored,
                    "hasFile": e.has_file,
                    "overview": e.overview,
                }
                for e in wanted.records
            ],
        }

    async def quality_profiles():
        profiles = await client.get_quality_profiles()
        return {
            "totalProfiles": len(profiles),
            "profiles": [
                {
                    "id": p.id,
                    "name": p.name,
                    "upgradeAllowed": p.upgrade_allowed,
                    "cutoff": p.cutoff,
                    "items": [_profile_item(item) for item in p.items],
                }
                for p in profiles
            ],
        }

    async def root_folders():
        folders = await client.get_root_folders()
        return {
            "totalFolders": len(folders),
            "folders": [
                {
                    "id": f.id,
                    "path": f.path,
                    "accessible": f.accessible,
                    "freeSpaceBytes": f.free_space,
                    "freeSpaceGB": bytes_to_gb(f.free_space) if f.free_space is not None else None,
                    "unmappedFolders": [{"name": u.name, "path": u.path} for u in f.unmapped_folders],
                }
                for f in folders
            ],
        }

    return [
        Resource(
            uri="sonarr://series/collection",
            name="TV Series Collection",
            description="Complete list of series in Sonarr with metadata and statistics",
            label="series collection",
            reader=series_collection,
        ),
        Resource(
            uri="sonarr://calendar/upcoming",
            name="Upcoming Episodes",
            description="Calendar view of upcoming episodes and air dates for the next 30 days",
            label="calendar",
            reader=upcoming_calendar,
        ),
        Resource(
            uri="sonarr://system/status",
            name="Sonarr System Status",
            description="Health, disk space, and system information",
            label="system status",
            reader=system_status,
        ),
        Resource(
            uri="sonarr://queue/current",
            name="Download Queue",
            description="Current download queue with progress and status information",
            label="queue",
            reader=current_queue,
        ),
        Resource(
            uri="sonarr://history/recent",
            name="Recent History",
            description="Recent download and import history (last 50 items)",
            label="history",
            reader=recent_history,
        ),
        Resource(
            uri="sonarr://wanted/missing",
            name="Wanted Episodes",
            description="Missing episodes that are being monitored",
            label="wanted episodes",
            reader=wanted_missing,
        ),
        Resource(
            uri="sonarr://config/quality-profiles",
            name="Quality Profiles",
            description="Available quality profiles and their configurations",
            label="quality profiles",
            reader=quality_profiles,
        ),
        Resource(
            uri="sonarr://config/root-folders",
            name="Root Folders",
            description="Configured root folders for series storage",
            label="root folders",
            reader=root_folders,
        ),
    ]

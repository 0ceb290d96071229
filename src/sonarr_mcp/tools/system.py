"""System status and calendar tools."""

import asyncio
from typing import List, Optional

from pydantic import Field

from ..client import SonarrClient
from ..config import FeatureConfig
from ..formatting import bytes_to_gb, episode_code, percent_free
from ..registry import Tool, ToolInput, ToolResult


class SystemStatusInput(ToolInput):
    pass


class GetCalendarInput(ToolInput):
    start: Optional[str] = Field(
        default=None, pattern=r"^\d{4}-\d{2}-\d{2}$", description="Start date (YYYY-MM-DD)"
    )
    end: Optional[str] = Field(
        default=None, pattern=r"^\d{4}-\d{2}-\d{2}$", description="End date (YYYY-MM-DD)"
    )
    unmonitored: bool = Field(default=False, description="Include unmonitored episodes")


def get_tools(client: SonarrClient, features: Optional[FeatureConfig] = None) -> List[Tool]:

    async def system_status(params: SystemStatusInput) -> ToolResult:
        status, disks = await asyncio.gather(client.get_system_status(), client.get_disk_space())

        return ToolResult.ok(
            f"Sonarr {status.version} running on {status.os_name} {status.os_version}",
            {
                "version": status.version,
                "startTime": status.start_time,
                "os": f"{status.os_name} {status.os_version}",
                "runtime": f"{status.runtime_name} {status.runtime_version}",
                "diskSpace": [
                    {
                        "path": disk.path,
                        "label": disk.label,
                        "freeSpaceGB": bytes_to_gb(disk.free_space),
                        "totalSpaceGB": bytes_to_gb(disk.total_space),
                        "percentFree": percent_free(disk.free_space, disk.total_space),
                    }
                    for disk in disks
                ],
            },
        )

    async def get_calendar(params: GetCalendarInput) -> ToolResult:
        calendar = await client.get_calendar(params.start, params.end, params.unmonitored)

        return ToolResult.ok(
            f"Found {len(calendar)} upcoming episodes",
            [
                {
                    "series": item.series.title if item.series else None,
                    "episode": f"{episode_code(item.season_number, item.episode_number)} - {item.title}",
                    "airDate": item.air_date,
                    "airDateUtc": item.air_date_utc,
                    "hasFile": item.has_file,
                    "monitored": item.monitored,
                    "network": item.series.network if item.series else None,
                }
                for item in calendar
            ],
        )

    return [
        Tool(
            name="system_status",
            description="Get Sonarr system status and health information",
            input_model=SystemStatusInput,
            handler=system_status,
            action="get system status",
        ),
        Tool(
            name="get_calendar",
            description="Get upcoming episodes calendar",
            input_model=GetCalendarInput,
            handler=get_calendar,
            action="get calendar",
        ),
    ]

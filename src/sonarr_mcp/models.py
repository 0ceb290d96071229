"""Pydantic models mirroring Sonarr v3 API resources."""

from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator, model_validator
from pydantic.alias_generators import to_camel


class SonarrModel(BaseModel):
    """Base for upstream records.

    Fields use snake_case in Python and camelCase on the wire. Fields Sonarr
    returns that are not declared here are kept, so a fetched record can be
    sent back whole on update.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    @field_validator("*", mode="before")
    @classmethod
    def _null_as_default(cls, value: Any, info: ValidationInfo) -> Any:
        # Sonarr sends null for counters and flags it has not computed
        if value is None and info.field_name in cls.model_fields:
            field = cls.model_fields[info.field_name]
            if not field.is_required():
                return field.get_default(call_default_factory=True)
        return value

    def to_api(self) -> Dict[str, Any]:
        """Serialize back to the upstream JSON shape."""
        return self.model_dump(by_alias=True, exclude_unset=True, mode="json")


T = TypeVar("T")


class PagingResource(SonarrModel, Generic[T]):
    """Paged envelope used by queue, history and wanted endpoints."""
    page: int = 1
    page_size: int = 0
    sort_key: Optional[str] = None
    sort_direction: Optional[str] = None
    total_records: int = 0
    records: List[T] = Field(default_factory=list)


# === System ===

class SystemStatus(SonarrModel):
    app_name: Optional[str] = None
    instance_name: Optional[str] = None
    version: Optional[str] = None
    build_time: Optional[str] = None
    start_time: Optional[str] = None
    is_debug: bool = False
    is_production: bool = False
    startup_path: Optional[str] = None
    app_data: Optional[str] = None
    os_name: Optional[str] = None
    os_version: Optional[str] = None
    is_linux: bool = False
    is_osx: bool = False
    is_windows: bool = False
    is_docker: bool = False
    is_mono: bool = False
    runtime_name: Optional[str] = None
    runtime_version: Optional[str] = None
    branch: Optional[str] = None
    authentication: Optional[str] = None
    sqlite_version: Optional[str] = None
    migration_version: Optional[int] = None
    url_base: Optional[str] = None


class DiskSpace(SonarrModel):
    path: Optional[str] = None
    label: Optional[str] = None
    free_space: Optional[int] = None
    total_space: Optional[int] = None


class HealthCheck(SonarrModel):
    source: Optional[str] = None
    type: Optional[str] = None
    message: Optional[str] = None
    wiki_url: Optional[str] = None


# === Quality ===

class Quality(SonarrModel):
    id: Optional[int] = None
    name: Optional[str] = None
    source: Optional[str] = None
    resolution: Optional[int] = None


class QualityModel(SonarrModel):
    """Quality attached to a file, queue item or history event."""
    quality: Optional[Quality] = None


class QualityProfileItem(SonarrModel):
    id: Optional[int] = None
    name: Optional[str] = None
    quality: Optional[Quality] = None
    items: List["QualityProfileItem"] = Field(default_factory=list)
    allowed: bool = False


class QualityProfile(SonarrModel):
    id: int
    name: str
    upgrade_allowed: bool = False
    cutoff: Optional[int] = None
    items: List[QualityProfileItem] = Field(default_factory=list)


class LanguageProfile(SonarrModel):
    id: int
    name: Optional[str] = None
    upgrade_allowed: bool = False


class CustomFormat(SonarrModel):
    id: Optional[int] = None
    name: str
    include_custom_format_when_renaming: bool = False
    specifications: List[Dict[str, Any]] = Field(default_factory=list)


class CustomFormatRef(SonarrModel):
    id: Optional[int] = None
    name: Optional[str] = None


# === Series ===

class SeriesStatistics(SonarrModel):
    season_count: int = 0
    episode_file_count: int = 0
    episode_count: int = 0
    total_episode_count: int = 0
    size_on_disk: int = 0
    percent_of_episodes: float = 0.0


class Series(SonarrModel):
    id: Optional[int] = None
    title: str = ""
    sort_title: Optional[str] = None
    title_slug: Optional[str] = None
    status: Optional[str] = None
    overview: Optional[str] = None
    network: Optional[str] = None
    year: Optional[int] = None
    path: Optional[str] = None
    root_folder_path: Optional[str] = None
    quality_profile_id: Optional[int] = None
    language_profile_id: Optional[int] = None
    season_folder: bool = True
    monitored: bool = False
    series_type: Optional[str] = None
    tvdb_id: Optional[int] = None
    imdb_id: Optional[str] = None
    tmdb_id: Optional[int] = None
    genres: List[str] = Field(default_factory=list)
    tags: List[int] = Field(default_factory=list)
    next_airing: Optional[str] = None
    previous_airing: Optional[str] = None
    season_count: int = 0
    episode_count: int = 0
    episode_file_count: int = 0
    size_on_disk: int = 0
    statistics: Optional[SeriesStatistics] = None

    @model_validator(mode="before")
    @classmethod
    def _counts_from_statistics(cls, data: Any) -> Any:
        # Sonarr v4 moved the counters under "statistics"
        if isinstance(data, dict) and isinstance(data.get("statistics"), dict):
            stats = data["statistics"]
            data = dict(data)
            for key in ("seasonCount", "episodeCount", "episodeFileCount", "sizeOnDisk"):
                if key not in data and key in stats:
                    data[key] = stats[key]
        return data


class SeriesLookup(SonarrModel):
    """Search result from series/lookup (not yet in the library)."""
    title: str = ""
    title_slug: Optional[str] = None
    year: Optional[int] = None
    network: Optional[str] = None
    overview: Optional[str] = None
    status: Optional[str] = None
    tvdb_id: Optional[int] = None
    imdb_id: Optional[str] = None
    tmdb_id: Optional[int] = None
    id: Optional[int] = None


class SeriesRef(SonarrModel):
    """Series embedded in queue/history/calendar records."""
    id: Optional[int] = None
    title: Optional[str] = None
    network: Optional[str] = None


# === Episodes ===

class Episode(SonarrModel):
    id: int
    series_id: Optional[int] = None
    tvdb_id: Optional[int] = None
    episode_file_id: Optional[int] = None
    season_number: int = 0
    episode_number: int = 0
    title: Optional[str] = None
    air_date: Optional[str] = None
    air_date_utc: Optional[str] = None
    overview: Optional[str] = None
    has_file: bool = False
    monitored: bool = False
    absolute_episode_number: Optional[int] = None


class CalendarItem(Episode):
    series: Optional[SeriesRef] = None


class WantedEpisode(Episode):
    series: Optional[SeriesRef] = None


class EpisodeRef(SonarrModel):
    id: Optional[int] = None
    title: Optional[str] = None
    season_number: int = 0
    episode_number: int = 0


class EpisodeFile(SonarrModel):
    id: int
    series_id: Optional[int] = None
    season_number: Optional[int] = None
    relative_path: Optional[str] = None
    path: Optional[str] = None
    size: Optional[int] = None
    date_added: Optional[str] = None
    quality: Optional[QualityModel] = None


# === Activity ===

class StatusMessage(SonarrModel):
    title: Optional[str] = None
    messages: List[str] = Field(default_factory=list)


class QueueItem(SonarrModel):
    id: int
    series_id: Optional[int] = None
    episode_id: Optional[int] = None
    series: Optional[SeriesRef] = None
    episode: Optional[EpisodeRef] = None
    quality: Optional[QualityModel] = None
    title: Optional[str] = None
    size: Optional[float] = None
    size_left: Optional[float] = Field(default=None, alias="sizeleft")
    time_left: Optional[str] = Field(default=None, alias="timeleft")
    estimated_completion_time: Optional[str] = None
    status: Optional[str] = None
    tracked_download_status: Optional[str] = None
    tracked_download_state: Optional[str] = None
    status_messages: List[StatusMessage] = Field(default_factory=list)
    error_message: Optional[str] = None
    download_id: Optional[str] = None
    protocol: Optional[str] = None
    download_client: Optional[str] = None
    indexer: Optional[str] = None


class HistoryItem(SonarrModel):
    id: int
    episode_id: Optional[int] = None
    series_id: Optional[int] = None
    series: Optional[SeriesRef] = None
    episode: Optional[EpisodeRef] = None
    quality: Optional[QualityModel] = None
    source_title: Optional[str] = None
    custom_formats: List[CustomFormatRef] = Field(default_factory=list)
    custom_format_score: Optional[int] = None
    quality_cutoff_not_met: bool = False
    date: Optional[str] = None
    download_id: Optional[str] = None
    event_type: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)


class Release(SonarrModel):
    guid: str
    title: Optional[str] = None
    indexer_id: Optional[int] = None
    indexer: Optional[str] = None
    quality: Optional[QualityModel] = None
    size: Optional[int] = None
    seeders: Optional[int] = None
    approved: bool = False
    rejections: List[str] = Field(default_factory=list)


class Command(SonarrModel):
    id: Optional[int] = None
    name: Optional[str] = None
    command_name: Optional[str] = None
    status: Optional[str] = None
    message: Optional[str] = None
    queued: Optional[str] = None
    started: Optional[str] = None
    ended: Optional[str] = None


# === Configuration ===

class UnmappedFolder(SonarrModel):
    name: Optional[str] = None
    path: Optional[str] = None


class RootFolder(SonarrModel):
    id: int
    path: str
    accessible: bool = False
    free_space: Optional[int] = None
    unmapped_folders: List[UnmappedFolder] = Field(default_factory=list)


class Indexer(SonarrModel):
    id: Optional[int] = None
    name: Optional[str] = None
    implementation: Optional[str] = None
    protocol: Optional[str] = None
    enable_rss: bool = False
    enable_automatic_search: bool = False
    enable_interactive_search: bool = False
    priority: Optional[int] = None


class DownloadClient(SonarrModel):
    id: Optional[int] = None
    name: Optional[str] = None
    implementation: Optional[str] = None
    protocol: Optional[str] = None
    enable: bool = False
    priority: Optional[int] = None


class Tag(SonarrModel):
    id: int
    label: str

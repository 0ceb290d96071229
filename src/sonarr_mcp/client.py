"""Async Sonarr v3 API client."""

import asyncio
import logging
from functools import lru_cache
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar

import httpx
from pydantic import TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

from .config import ConnectionConfig
from .models import (
    CalendarItem,
    Command,
    CustomFormat,
    DiskSpace,
    DownloadClient,
    Episode,
    EpisodeFile,
    HealthCheck,
    HistoryItem,
    Indexer,
    LanguageProfile,
    PagingResource,
    QualityProfile,
    QueueItem,
    Release,
    RootFolder,
    Series,
    SeriesLookup,
    SystemStatus,
    Tag,
    WantedEpisode,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_BACKOFF_MS = 10_000


class SonarrApiError(Exception):
    """Any failed call to Sonarr: error status, no response, or bad payload."""

    def __init__(self, message: str, status_code: Optional[int] = None, response: Any = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.response = response


def backoff_delay(attempt: int) -> float:
    """Seconds to wait before retry attempt `attempt` (1-based): 1s, 2s, 4s, 8s, capped at 10s."""
    return min(1000 * 2 ** (attempt - 1), MAX_BACKOFF_MS) / 1000


def is_retryable(error: Exception) -> bool:
    """No status (connection failure) or a 5xx is worth retrying; anything else is the caller's problem."""
    status = getattr(error, "status_code", None)
    return status is None or status >= 500


def _error_message(response: httpx.Response, body: Any) -> str:
    """Prefer the message Sonarr sent, fall back to the status line."""
    if isinstance(body, str) and body:
        return body
    if isinstance(body, dict):
        if body.get("message"):
            return body["message"]
        if body.get("error"):
            return body["error"]
    if isinstance(body, list):
        # Validation failures: [{"propertyName": ..., "errorMessage": ...}]
        messages = [e["errorMessage"] for e in body if isinstance(e, dict) and e.get("errorMessage")]
        if messages:
            return "; ".join(messages)
    return f"HTTP {response.status_code}: {response.reason_phrase}"


def _body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def _query(**params) -> Dict[str, Any]:
    """camelCase query parameters, dropping the ones not given."""
    return {to_camel(key): value for key, value in params.items() if value is not None}


@lru_cache(maxsize=None)
def _adapter(response_type) -> TypeAdapter:
    return TypeAdapter(response_type)


def _parse(response_type, data: Any):
    try:
        return _adapter(response_type).validate_python(data)
    except ValidationError as e:
        raise SonarrApiError(
            f"Unexpected response from Sonarr: {e.error_count()} validation error(s)",
            response=data,
        ) from e


async def _log_request(request: httpx.Request) -> None:
    logger.debug(f"Sonarr API Request: {request.method} {request.url.path}")


async def _log_response(response: httpx.Response) -> None:
    logger.debug(f"Sonarr API Response: {response.status_code} {response.request.url.path}")


class SonarrClient:
    """Client for the Sonarr v3 API.

    One instance is shared by every tool and resource. It holds no state
    besides its connection settings, so concurrent use needs no locking.
    """

    def __init__(
        self,
        config: ConnectionConfig,
        max_connections: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            config: Connection settings (URL, key, timeout, retries, TLS)
            max_connections: Cap on concurrent connections to Sonarr
            transport: Custom httpx transport (tests)
        """
        self.config = config
        limits = httpx.Limits(max_connections=max_connections) if max_connections else httpx.Limits()
        self._client = httpx.AsyncClient(
            base_url=f"{config.base_url}/api/v3",
            headers={
                "X-Api-Key": config.api_key,
                "Content-Type": "application/json",
            },
            timeout=httpx.Timeout(config.timeout_seconds),
            verify=config.verify_tls,
            limits=limits,
            transport=transport,
            event_hooks={"request": [_log_request], "response": [_log_response]},
        )

    async def __aenter__(self) -> "SonarrClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # =========================================================================
    # Transport
    # =========================================================================

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
    ) -> Any:
        """Send one request; every failure leaves as SonarrApiError."""
        try:
            response = await self._client.request(method, path, params=params, json=json)
        except httpx.TransportError as e:
            logger.error(f"Sonarr API Error: no response for {method} {path}: {e!r}")
            raise SonarrApiError("No response from server") from e
        except httpx.HTTPError as e:
            message = str(e) or "Unknown error"
            logger.error(f"Sonarr API Error: {message}")
            raise SonarrApiError(message) from e

        if not response.is_success:
            body = _body(response)
            message = _error_message(response, body)
            logger.error(f"Sonarr API Error: {message}")
            raise SonarrApiError(message, response.status_code, body)

        return _body(response)

    async def execute_with_retry(
        self,
        operation: Callable[[], Awaitable[T]],
        retries: Optional[int] = None,
    ) -> T:
        """Run `operation` up to retries+1 times with exponential backoff.

        Failures with a status code below 500 are raised immediately. After
        the budget is spent the last error is raised as-is.
        """
        if retries is None:
            retries = self.config.max_retries
        retries = max(retries, 0)

        for attempt in range(retries + 1):
            try:
                return await operation()
            except Exception as e:
                if attempt == retries or not is_retryable(e):
                    raise
                delay = backoff_delay(attempt + 1)
                logger.warning(
                    f"Sonarr API attempt {attempt + 1} failed, retrying in {int(delay * 1000)}ms: {e}"
                )
                await asyncio.sleep(delay)

    async def _get(self, path: str, response_type, params: Optional[Dict[str, Any]] = None):
        data = await self.execute_with_retry(lambda: self._request("GET", path, params=params))
        return _parse(response_type, data)

    async def _send(
        self,
        method: str,
        path: str,
        response_type=None,
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
    ):
        # Writes are not retried: a resent command could run twice upstream
        data = await self._request(method, path, params=params, json=json)
        if response_type is None or data is None:
            return None
        return _parse(response_type, data)

    async def _command(self, name: str, **body) -> Command:
        return await self._send("POST", "/command", Command, json={"name": name, **_query(**body)})

    async def test_connection(self) -> None:
        """Check that Sonarr answers with the configured URL and key."""
        try:
            await self.get_system_status()
            logger.info("Sonarr connection test successful")
        except SonarrApiError as e:
            logger.error(f"Sonarr connection test failed: {e.message}")
            raise SonarrApiError(f"Failed to connect to {self.config.base_url}: {e.message}") from e

    # =========================================================================
    # System
    # =========================================================================

    async def get_system_status(self) -> SystemStatus:
        return await self._get("/system/status", SystemStatus)

    async def get_disk_space(self) -> List[DiskSpace]:
        return await self._get("/diskspace", List[DiskSpace])

    async def get_health(self) -> List[HealthCheck]:
        return await self._get("/health", List[HealthCheck])

    # =========================================================================
    # Series
    # =========================================================================

    async def get_series(self, include_season_images: bool = False) -> List[Series]:
        return await self._get("/series", List[Series], _query(include_season_images=include_season_images))

    async def get_series_by_id(self, series_id: int, include_season_images: bool = False) -> Series:
        return await self._get(
            f"/series/{series_id}", Series, _query(include_season_images=include_season_images)
        )

    async def add_series(self, series: Dict[str, Any]) -> Series:
        """Add a series. `series` is the upstream body (title, tvdbId, qualityProfileId, ...)."""
        return await self._send("POST", "/series", Series, json=series)

    async def update_series(self, series: Series) -> Series:
        """PUT the whole record back. No concurrency token: last writer wins."""
        return await self._send("PUT", f"/series/{series.id}", Series, json=series.to_api())

    async def delete_series(
        self,
        series_id: int,
        delete_files: bool = False,
        add_import_list_exclusion: bool = False,
    ) -> None:
        await self._send(
            "DELETE",
            f"/series/{series_id}",
            params=_query(delete_files=delete_files, add_import_list_exclusion=add_import_list_exclusion),
        )

    async def search_series(self, term: str) -> List[SeriesLookup]:
        """Look up series on TVDB by name, tvdb:ID or imdb:ID."""
        return await self._get("/series/lookup", List[SeriesLookup], _query(term=term))

    # =========================================================================
    # Episodes
    # =========================================================================

    async def get_episodes_by_series(self, series_id: int, include_images: bool = False) -> List[Episode]:
        return await self._get(
            "/episode", List[Episode], _query(series_id=series_id, include_images=include_images)
        )

    async def get_episode_by_id(self, episode_id: int) -> Episode:
        return await self._get(f"/episode/{episode_id}", Episode)

    async def update_episode(self, episode: Episode) -> Episode:
        return await self._send("PUT", f"/episode/{episode.id}", Episode, json=episode.to_api())

    async def update_episodes(self, episodes: List[Episode]) -> None:
        await self._send("PUT", "/episode/bulk", json=[e.to_api() for e in episodes])

    async def get_episode_files_by_series(self, series_id: int) -> List[EpisodeFile]:
        return await self._get("/episodefile", List[EpisodeFile], _query(series_id=series_id))

    async def get_episode_file_by_id(self, episode_file_id: int) -> EpisodeFile:
        return await self._get(f"/episodefile/{episode_file_id}", EpisodeFile)

    async def delete_episode_file(self, episode_file_id: int) -> None:
        await self._send("DELETE", f"/episodefile/{episode_file_id}")

    # =========================================================================
    # Wanted & calendar
    # =========================================================================

    async def get_wanted_missing(
        self,
        page: int = 1,
        page_size: int = 20,
        include_series: bool = True,
        sort_key: Optional[str] = None,
        sort_direction: Optional[str] = None,
    ) -> PagingResource[WantedEpisode]:
        return await self._get(
            "/wanted/missing",
            PagingResource[WantedEpisode],
            _query(page=page, page_size=page_size, include_series=include_series,
                   sort_key=sort_key, sort_direction=sort_direction),
        )

    async def get_wanted_cutoff_unmet(
        self,
        page: int = 1,
        page_size: int = 20,
        include_series: bool = True,
        sort_key: Optional[str] = None,
        sort_direction: Optional[str] = None,
    ) -> PagingResource[WantedEpisode]:
        return await self._get(
            "/wanted/cutoff",
            PagingResource[WantedEpisode],
            _query(page=page, page_size=page_size, include_series=include_series,
                   sort_key=sort_key, sort_direction=sort_direction),
        )

    async def get_calendar(
        self,
        start: Optional[str] = None,
        end: Optional[str] = None,
        unmonitored: bool = False,
        include_series: bool = True,
    ) -> List[CalendarItem]:
        """Episodes airing between `start` and `end` (YYYY-MM-DD)."""
        return await self._get(
            "/calendar",
            List[CalendarItem],
            _query(start=start, end=end, unmonitored=unmonitored, include_series=include_series),
        )

    # =========================================================================
    # Queue & history
    # =========================================================================

    async def get_queue(
        self,
        page: int = 1,
        page_size: int = 20,
        include_unknown_series_items: Optional[bool] = None,
        include_series: bool = True,
        include_episode: bool = True,
    ) -> PagingResource[QueueItem]:
        return await self._get(
            "/queue",
            PagingResource[QueueItem],
            _query(page=page, page_size=page_size,
                   include_unknown_series_items=include_unknown_series_items,
                   include_series=include_series, include_episode=include_episode),
        )

    async def get_queue_details(
        self,
        series_id: Optional[int] = None,
        include_series: bool = True,
        include_episode: bool = True,
    ) -> List[QueueItem]:
        return await self._get(
            "/queue/details",
            List[QueueItem],
            _query(series_id=series_id, include_series=include_series, include_episode=include_episode),
        )

    async def remove_from_queue(self, queue_id: int, remove_from_client: bool = True, blocklist: bool = False) -> None:
        await self._send(
            "DELETE",
            f"/queue/{queue_id}",
            params=_query(remove_from_client=remove_from_client, blocklist=blocklist),
        )

    async def get_history(
        self,
        page: int = 1,
        page_size: int = 20,
        episode_id: Optional[int] = None,
        series_id: Optional[int] = None,
        event_type: Optional[str] = None,
        include_series: bool = True,
        include_episode: bool = True,
    ) -> PagingResource[HistoryItem]:
        return await self._get(
            "/history",
            PagingResource[HistoryItem],
            _query(page=page, page_size=page_size, episode_id=episode_id, series_id=series_id,
                   event_type=event_type, include_series=include_series, include_episode=include_episode),
        )

    async def get_history_by_series(self, series_id: int, event_type: Optional[str] = None) -> List[HistoryItem]:
        return await self._get(
            "/history/series",
            List[HistoryItem],
            _query(series_id=series_id, event_type=event_type, include_episode=True),
        )

    # =========================================================================
    # Commands
    # =========================================================================

    async def search_episodes(self, episode_ids: List[int]) -> Command:
        return await self._command("EpisodeSearch", episode_ids=episode_ids)

    async def search_series_missing(self, series_id: int) -> Command:
        return await self._command("SeriesSearch", series_id=series_id)

    async def search_all_missing(self) -> Command:
        return await self._command("MissingEpisodeSearch")

    async def refresh_series(self, series_id: Optional[int] = None) -> Command:
        if series_id is None:
            return await self._command("RefreshAllSeries")
        return await self._command("RefreshSeries", series_id=series_id)

    async def rescan_series(self, series_id: Optional[int] = None) -> Command:
        if series_id is None:
            return await self._command("RescanAllSeries")
        return await self._command("RescanSeries", series_id=series_id)

    async def rename_series(self, series_ids: List[int]) -> Command:
        return await self._command("RenameSeries", series_ids=series_ids)

    async def backup_database(self) -> Command:
        return await self._command("Backup")

    async def get_command(self, command_id: int) -> Command:
        return await self._get(f"/command/{command_id}", Command)

    # =========================================================================
    # Releases
    # =========================================================================

    async def get_releases(self, episode_id: int) -> List[Release]:
        return await self._get("/release", List[Release], _query(episode_id=episode_id))

    async def download_release(self, guid: str, indexer_id: int) -> None:
        await self._send("POST", "/release", json={"guid": guid, "indexerId": indexer_id})

    # =========================================================================
    # Profiles & custom formats
    # =========================================================================

    async def get_quality_profiles(self) -> List[QualityProfile]:
        return await self._get("/qualityprofile", List[QualityProfile])

    async def get_quality_profile_by_id(self, profile_id: int) -> QualityProfile:
        return await self._get(f"/qualityprofile/{profile_id}", QualityProfile)

    async def create_quality_profile(self, profile: Dict[str, Any]) -> QualityProfile:
        return await self._send("POST", "/qualityprofile", QualityProfile, json=profile)

    async def update_quality_profile(self, profile: QualityProfile) -> QualityProfile:
        return await self._send("PUT", f"/qualityprofile/{profile.id}", QualityProfile, json=profile.to_api())

    async def delete_quality_profile(self, profile_id: int) -> None:
        await self._send("DELETE", f"/qualityprofile/{profile_id}")

    async def get_language_profiles(self) -> List[LanguageProfile]:
        """Sonarr v3 only; v4 answers 404."""
        return await self._get("/languageprofile", List[LanguageProfile])

    async def get_language_profile_by_id(self, profile_id: int) -> LanguageProfile:
        return await self._get(f"/languageprofile/{profile_id}", LanguageProfile)

    async def get_custom_formats(self) -> List[CustomFormat]:
        return await self._get("/customformat", List[CustomFormat])

    async def get_custom_format_by_id(self, format_id: int) -> CustomFormat:
        return await self._get(f"/customformat/{format_id}", CustomFormat)

    async def create_custom_format(self, custom_format: Dict[str, Any]) -> CustomFormat:
        return await self._send("POST", "/customformat", CustomFormat, json=custom_format)

    async def update_custom_format(self, custom_format: CustomFormat) -> CustomFormat:
        return await self._send(
            "PUT", f"/customformat/{custom_format.id}", CustomFormat, json=custom_format.to_api()
        )

    async def delete_custom_format(self, format_id: int) -> None:
        await self._send("DELETE", f"/customformat/{format_id}")

    # =========================================================================
    # Root folders
    # =========================================================================

    async def get_root_folders(self) -> List[RootFolder]:
        return await self._get("/rootfolder", List[RootFolder])

    async def add_root_folder(self, path: str) -> RootFolder:
        return await self._send("POST", "/rootfolder", RootFolder, json={"path": path})

    async def delete_root_folder(self, folder_id: int) -> None:
        await self._send("DELETE", f"/rootfolder/{folder_id}")

    # =========================================================================
    # Indexers & download clients
    # =========================================================================

    async def get_indexers(self) -> List[Indexer]:
        return await self._get("/indexer", List[Indexer])

    async def get_indexer_by_id(self, indexer_id: int) -> Indexer:
        return await self._get(f"/indexer/{indexer_id}", Indexer)

    async def test_indexer(self, indexer: Dict[str, Any]) -> None:
        await self._send("POST", "/indexer/test", json=indexer)

    async def get_download_clients(self) -> List[DownloadClient]:
        return await self._get("/downloadclient", List[DownloadClient])

    async def get_download_client_by_id(self, client_id: int) -> DownloadClient:
        return await self._get(f"/downloadclient/{client_id}", DownloadClient)

    async def test_download_client(self, download_client: Dict[str, Any]) -> None:
        await self._send("POST", "/downloadclient/test", json=download_client)

    # =========================================================================
    # Tags
    # =========================================================================

    async def get_tags(self) -> List[Tag]:
        return await self._get("/tag", List[Tag])

    async def create_tag(self, label: str) -> Tag:
        return await self._send("POST", "/tag", Tag, json={"label": label})

    async def delete_tag(self, tag_id: int) -> None:
        await self._send("DELETE", f"/tag/{tag_id}")

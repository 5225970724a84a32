"""npm registry lookup engine.

Resolves package names to existence + metadata against the npm registry,
with an existence cache, retry with exponential backoff for transient
failures, per-request timeouts and best-effort download statistics.
"""

import dataclasses
import logging
import time
from typing import Any, Callable, Dict, Optional
from urllib.parse import quote

import requests

from importvalidator.config import ValidatorConfig
from importvalidator.models import ExistenceRecord, PackageMetadata, Resolution, now_millis
from importvalidator.parsers.base import (
    TRANSIENT_NETWORK_ERRORS,
    FetchError,
    PackageNotFoundError,
    TransientFetchError,
)
from importvalidator.parsers.npm.manifest import ProjectMembershipIndex
from importvalidator.runtime.cache import TimedCache
from importvalidator.storage import CacheStore

logger = logging.getLogger("importvalidator.parsers.npm.registry")

EXISTENCE_NAMESPACE = "existence"


def _as_text(value: Any, key: Optional[str] = None) -> str:
    """Registry fields are either a string or an object carrying one."""
    if isinstance(value, str):
        return value
    if key and isinstance(value, dict):
        inner = value.get(key)
        return inner if isinstance(inner, str) else ""
    return ""


def metadata_from_registry(
    name: str, data: Dict[str, Any], monthly_downloads: int = 0
) -> PackageMetadata:
    """Map a registry package document to ``PackageMetadata``.

    Args:
        name: Requested package name, used when the document has none.
        data: Decoded registry JSON.
        monthly_downloads: Downloads over the last month, 0 if unknown.

    Returns:
        PackageMetadata: Immutable metadata record.
    """
    dist_tags = data.get("dist-tags") if isinstance(data.get("dist-tags"), dict) else {}
    keywords = data.get("keywords")
    if not isinstance(keywords, list):
        keywords = []

    return PackageMetadata(
        name=_as_text(data.get("name")) or name,
        latest_version=_as_text(dist_tags.get("latest")) or _as_text(data.get("version")),
        description=_as_text(data.get("description")),
        homepage=_as_text(data.get("homepage")),
        repository_url=_as_text(data.get("repository"), "url"),
        license=_as_text(data.get("license"), "type") or "Unknown",
        author=_as_text(data.get("author"), "name"),
        keywords=tuple(k for k in keywords if isinstance(k, str)),
        monthly_downloads=monthly_downloads,
    )


class RegistryClient:
    """Resolves package names against the npm registry.

    Only the existence verdict is cached; metadata (descriptions, download
    counts) is refetched whenever a caller needs it. Distinct names may be
    resolved concurrently from several threads. Two concurrent first
    lookups of the same name may both hit the network.
    """

    def __init__(
        self,
        config: Optional[ValidatorConfig] = None,
        membership: Optional[ProjectMembershipIndex] = None,
        session: Optional[requests.Session] = None,
        store: Optional[CacheStore] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], int] = now_millis,
    ) -> None:
        """Initialize the client.

        Args:
            config: Validator configuration (timeouts, retry policy, URLs).
            membership: Project-membership index used to short-circuit
                lookups of declared dependencies.
            session: HTTP session; a fresh ``requests.Session`` by default.
            store: Optional persistent store for the existence cache.
            sleep: Called with the backoff delay in seconds between retries.
            clock: Epoch-millisecond clock for cache timestamps.
        """
        self.config = config or ValidatorConfig.default()
        self.membership = membership
        self._session = session or requests.Session()
        self._sleep = sleep
        self._existence: TimedCache[ExistenceRecord] = TimedCache(
            self.config.cache_timeout,
            clock=clock,
            store=store,
            namespace=EXISTENCE_NAMESPACE,
            encode=ExistenceRecord.to_dict,
            decode=ExistenceRecord.from_dict,
        )
        self._headers = {
            "Accept": "application/json",
            "User-Agent": self.config.user_agent,
        }

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def resolve(self, name: str) -> Resolution:
        """Resolve a root package name.

        Never raises for registry failures: exhausted retries degrade to
        ``exists=False`` unless the package is a declared dependency.

        Args:
            name: Root package name (``pkg`` or ``@scope/pkg``).

        Returns:
            Resolution: Existence verdict and metadata, if any.
        """
        is_project = self._is_project_dependency(name)
        cached = self._existence.get(name)

        if cached is not None:
            return self._resolve_cached(name, cached, is_project)

        if is_project:
            metadata = self._try_fetch_metadata(name, self.config.retry_count)
            self._existence.set(name, ExistenceRecord(True, True))
            return Resolution(True, self._as_project_metadata(name, metadata))

        try:
            metadata = self.fetch_metadata(name)
        except PackageNotFoundError:
            logger.debug("Package %s not found on registry", name)
            self._existence.set(name, ExistenceRecord(False))
            return Resolution(False, None)
        except FetchError as e:
            logger.warning("Lookup failed for %s, treating as missing: %s", name, e)
            self._existence.set(name, ExistenceRecord(False))
            return Resolution(False, None)

        self._existence.set(name, ExistenceRecord(True))
        return Resolution(True, metadata)

    def get_package_info(self, name: str) -> Optional[PackageMetadata]:
        """Return metadata for one package, or None if it does not exist."""
        return self.resolve(name).metadata

    def fetch_metadata(self, name: str, attempts: Optional[int] = None) -> PackageMetadata:
        """Fetch registry metadata plus download statistics.

        Args:
            name: Root package name.
            attempts: Maximum attempts; defaults to ``retry_count``.

        Returns:
            PackageMetadata: Metadata for the package.

        Raises:
            PackageNotFoundError: The registry answered 404.
            FetchError: Every attempt failed.
        """
        url = f"{self.config.registry_url}/{quote(name, safe='@')}"
        data = self._request_with_retry(url, name, attempts or self.config.retry_count)
        return metadata_from_registry(name, data, self._fetch_downloads(name))

    def clear_cache(self) -> None:
        self._existence.clear()
        logger.debug("Existence cache cleared")

    def close(self) -> None:
        self._session.close()

    # ------------------------------------------------------------------
    # Resolution helpers
    # ------------------------------------------------------------------

    def _resolve_cached(
        self, name: str, cached: ExistenceRecord, is_project: bool
    ) -> Resolution:
        is_project = is_project or cached.is_project_dependency
        if not cached.exists and not is_project:
            return Resolution(False, None)

        # Cached positive: only refresh the mutable metadata, one attempt.
        metadata = self._try_fetch_metadata(name, 1)
        if is_project:
            return Resolution(True, self._as_project_metadata(name, metadata))
        return Resolution(True, metadata)

    def _try_fetch_metadata(self, name: str, attempts: int) -> Optional[PackageMetadata]:
        try:
            return self.fetch_metadata(name, attempts)
        except FetchError as e:
            logger.debug("Metadata fetch for %s failed: %s", name, e)
            return None

    def _as_project_metadata(
        self, name: str, metadata: Optional[PackageMetadata]
    ) -> PackageMetadata:
        if metadata is None:
            declared = self.membership.declared_version(name) if self.membership is not None else None
            return PackageMetadata.minimal(name, declared or "")
        return dataclasses.replace(metadata, is_project_dependency=True)

    def _is_project_dependency(self, name: str) -> bool:
        return self.membership is not None and self.membership.is_project_dependency(name)

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    def _request_with_retry(self, url: str, name: str, attempts: int) -> Dict[str, Any]:
        last_error: Optional[FetchError] = None
        for attempt in range(1, attempts + 1):
            try:
                return self._request_json(url, name)
            except TransientFetchError as e:
                last_error = e
                if attempt >= attempts:
                    break
                wait_time = self.config.retry_delay_seconds * (
                    self.config.backoff_factor ** (attempt - 1)
                )
                logger.warning(
                    "Retry %d/%d for %s after error: %s (waiting %.2fs)",
                    attempt,
                    attempts - 1,
                    name,
                    e,
                    wait_time,
                )
                self._sleep(wait_time)

        raise last_error or FetchError(name, "no attempts made")

    def _request_json(self, url: str, name: str) -> Dict[str, Any]:
        logger.debug("Fetching npm metadata from %s", url)
        try:
            response = self._session.get(
                url, timeout=self.config.request_timeout, headers=self._headers
            )
        except TRANSIENT_NETWORK_ERRORS as e:
            raise TransientFetchError(name, f"request failed: {e}") from e
        except requests.RequestException as e:
            raise FetchError(name, f"request error: {e}") from e

        status = response.status_code
        if status == 404:
            raise PackageNotFoundError(name, "not found on registry")
        if not 200 <= status < 300:
            raise TransientFetchError(name, f"HTTP {status}", status_code=status)

        try:
            data = response.json()
        except ValueError as e:
            raise FetchError(name, f"invalid JSON response: {e}") from e
        if not isinstance(data, dict):
            raise FetchError(name, "registry response is not a JSON object")
        return data

    def _fetch_downloads(self, name: str) -> int:
        """Last-month download count; 0 when the statistics API fails."""
        url = f"{self.config.downloads_url}/point/last-month/{quote(name, safe='@/')}"
        try:
            response = self._session.get(
                url, timeout=self.config.request_timeout, headers=self._headers
            )
            if not 200 <= response.status_code < 300:
                return 0
            downloads = response.json().get("downloads", 0)
            return int(downloads) if isinstance(downloads, (int, float)) else 0
        except (requests.RequestException, ValueError, AttributeError) as e:
            logger.debug("Download statistics unavailable for %s: %s", name, e)
            return 0

"""Document validator: parse, classify and resolve the imports of one document.

Composes the source parser, specifier classifier, registry client,
project-membership index and framework classifier into
``validate_document(text, document_id) -> List[ImportResult]`` with a
per-document result cache.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from importvalidator.config import ValidatorConfig
from importvalidator.models import ImportOccurrence, ImportResult, Resolution, now_millis
from importvalidator.parsers.base import BaseCodeParser
from importvalidator.parsers.npm.code_parser import NpmCodeParser
from importvalidator.parsers.npm.frameworks import is_framework
from importvalidator.parsers.npm.manifest import ProjectMembershipIndex
from importvalidator.parsers.npm.registry import RegistryClient
from importvalidator.parsers.npm.specifier import classify, normalize_aliases
from importvalidator.runtime.cache import TimedCache
from importvalidator.storage import CacheStore

logger = logging.getLogger("importvalidator.runtime.validator")

DOCUMENT_NAMESPACE = "documents"


def _encode_results(results: List[ImportResult]) -> List[Dict]:
    return [result.to_dict() for result in results]


def _decode_results(data: List[Dict]) -> List[ImportResult]:
    return [ImportResult.from_dict(item) for item in data]


def diagnostic_severity(result: ImportResult, config: ValidatorConfig) -> Optional[str]:
    """Severity a diagnostics consumer should report for ``result``.

    Returns:
        Optional[str]: None for imports found on the registry, the framework
        level for framework packages, otherwise the configured level.
    """
    if result.exists_on_registry:
        return None
    if result.is_framework_package:
        return config.framework_severity_level
    return config.severity_level


class DocumentValidator:
    """Validates the npm imports of individual documents."""

    def __init__(
        self,
        config: ValidatorConfig,
        registry: RegistryClient,
        membership: Optional[ProjectMembershipIndex] = None,
        parser: Optional[BaseCodeParser] = None,
        store: Optional[CacheStore] = None,
        clock: Callable[[], int] = now_millis,
    ) -> None:
        self.config = config
        self.registry = registry
        self.membership = membership
        self.parser = parser or NpmCodeParser()
        self._aliases = normalize_aliases(config.path_aliases)
        self._ignored = tuple(config.ignored_packages)
        self._documents: TimedCache[List[ImportResult]] = TimedCache(
            config.cache_timeout,
            clock=clock,
            store=store,
            namespace=DOCUMENT_NAMESPACE,
            encode=_encode_results,
            decode=_decode_results,
        )

    def validate_document(
        self, source_text: str, document_id: str, use_cache: bool = True
    ) -> List[ImportResult]:
        """Validate every external import in a document.

        Args:
            source_text: Full text of the document.
            document_id: Stable identity (path or URI); its suffix picks the
                grammar.
            use_cache: Return a fresh cached result when available.

        Returns:
            List[ImportResult]: One result per external import, in source
            order.
        """
        if use_cache:
            cached = self._documents.get(document_id)
            if cached is not None:
                logger.debug("Document cache hit for %s", document_id)
                return list(cached)

        occurrences = self.parser.parse(source_text, Path(document_id))
        external = self._external_occurrences(occurrences)

        names = list(dict.fromkeys(name for _, name in external))
        resolutions = self._resolve_all(names)

        results = [
            self._build_result(occurrence, name, resolutions.get(name))
            for occurrence, name in external
        ]
        self._documents.set(document_id, results)
        logger.debug(
            "Validated %s: %d occurrence(s), %d external import(s)",
            document_id,
            len(occurrences),
            len(results),
        )
        return list(results)

    def get_cached(self, document_id: str) -> Optional[List[ImportResult]]:
        cached = self._documents.get(document_id)
        return list(cached) if cached is not None else None

    def invalidate(self, document_id: str) -> None:
        self._documents.invalidate(document_id)

    def clear_cache(self) -> None:
        self._documents.clear()

    def _external_occurrences(
        self, occurrences: Sequence[ImportOccurrence]
    ) -> List[Tuple[ImportOccurrence, str]]:
        external = []
        for occurrence in occurrences:
            classification = classify(occurrence.specifier, self._aliases)
            if classification.is_external:
                external.append((occurrence, classification.package_name))
        return external

    def _resolve_all(self, names: List[str]) -> Dict[str, Optional[Resolution]]:
        """Resolve unique package names concurrently.

        A name whose resolution raises maps to None; the others are
        unaffected.
        """
        resolutions: Dict[str, Optional[Resolution]] = {}
        if not names:
            return resolutions

        workers = min(self.config.max_concurrent_lookups, len(names))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="lookup") as executor:
            futures = {name: executor.submit(self.registry.resolve, name) for name in names}
            for name, future in futures.items():
                try:
                    resolutions[name] = future.result()
                except Exception as e:
                    logger.warning("Failed to resolve %s: %s", name, e)
                    resolutions[name] = None
        return resolutions

    def _build_result(
        self,
        occurrence: ImportOccurrence,
        name: str,
        resolution: Optional[Resolution],
    ) -> ImportResult:
        is_project = (
            self.membership.is_project_dependency(name) if self.membership is not None else False
        )
        return ImportResult(
            import_name=name,
            span=occurrence.span,
            exists_on_registry=resolution.exists if resolution else False,
            package_metadata=resolution.metadata if resolution else None,
            kind=occurrence.kind,
            is_framework_package=is_framework(name, self._ignored),
            is_project_dependency=is_project,
        )

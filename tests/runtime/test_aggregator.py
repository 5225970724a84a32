import json
import os
from pathlib import Path
from typing import List

import pytest

from conftest import FakeClock, StubRegistry
from importvalidator.config import ValidatorConfig
from importvalidator.models import ScanState
from importvalidator.parsers.base import ParseError, ScanError
from importvalidator.parsers.npm.code_parser import NpmCodeParser
from importvalidator.parsers.npm.manifest import ProjectMembershipIndex
from importvalidator.runtime.aggregator import WorkspaceAggregator
from importvalidator.runtime.validator import DocumentValidator
from importvalidator.storage import CacheStore


def _write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def _aggregator(
    registry=None,
    config=None,
    membership=None,
    store=None,
    clock=None,
    **kwargs,
) -> WorkspaceAggregator:
    config = config or ValidatorConfig()
    validator = DocumentValidator(
        config,
        registry or StubRegistry(existing={"lodash"}),
        membership,
        store=store,
        clock=clock or FakeClock(),
    )
    return WorkspaceAggregator(config, validator, membership, store=store, **kwargs)


@pytest.fixture
def workspace(tmp_path: Path) -> List[Path]:
    return [
        _write(tmp_path / "src" / "a.js", 'import _ from "lodash";\nimport pad from "left-pad";\n'),
        _write(tmp_path / "src" / "b.ts", 'import React from "react";\nimport "./local";\n'),
        _write(tmp_path / "src" / "c.js", 'const _ = require("lodash");\n'),
    ]


def test_scan_counts_imports(workspace: List[Path]) -> None:
    aggregator = _aggregator()

    stats = aggregator.scan(workspace)

    assert aggregator.state is ScanState.COMPLETED
    assert stats.total_files == 3
    assert stats.processed_files == 3
    assert stats.total_imports == 4
    assert stats.valid_imports == 2
    # react is missing from the stub registry but is a framework package.
    assert stats.invalid_imports == 1
    assert stats.framework_imports == 3
    assert stats.processing_percentage == 100
    assert aggregator.get_all_imports() == {"lodash", "left-pad", "react"}


def test_rescanning_never_double_counts(workspace: List[Path]) -> None:
    aggregator = _aggregator()

    aggregator.validate_file(workspace[0])
    aggregator.validate_document(workspace[1].read_text(encoding="utf-8"), str(workspace[1]))
    aggregator.scan(workspace)
    stats = aggregator.scan(workspace, force_reprocess=True)

    assert stats.total_imports == 4
    assert stats.processed_files == 3


def test_relative_and_absolute_paths_share_one_entry(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    source = _write(tmp_path / "a.js", 'import _ from "lodash";\n')
    monkeypatch.chdir(tmp_path)
    aggregator = _aggregator()

    aggregator.validate_file(Path("a.js"))
    aggregator.validate_document(source.read_text(encoding="utf-8"), "a.js")
    stats = aggregator.scan([source.resolve()])

    assert stats.total_imports == 1
    assert len(aggregator.get_file_imports("a.js")) == 1
    assert aggregator.get_file_imports(str(source.resolve())) == aggregator.get_file_imports("a.js")


def test_validate_document_does_not_count_as_processed_file() -> None:
    aggregator = _aggregator()

    results = aggregator.validate_document('import "lodash";', "unsaved.js")

    stats = aggregator.get_stats()
    assert len(results) == 1
    assert stats.total_imports == 1
    assert stats.processed_files == 0


def test_changed_only_scan_skips_untouched_files(workspace: List[Path]) -> None:
    aggregator = _aggregator()
    aggregator.scan(workspace)

    mtime = workspace[2].stat().st_mtime
    _write(workspace[2], 'const _ = require("lodash");\nrequire("uuid");\n')
    os.utime(workspace[2], (mtime + 10, mtime + 10))
    stats = aggregator.scan(workspace, only_changed=True)

    assert stats.unchanged_files == 2
    assert stats.processed_files == 1
    assert stats.total_imports == 5
    assert "uuid" in aggregator.get_all_imports()


def test_unreadable_files_are_recorded_as_errors(tmp_path: Path, workspace: List[Path]) -> None:
    broken = _write(tmp_path / "src" / "broken.js", 'import "lodash";')
    missing = tmp_path / "src" / "missing.js"

    def read_text(path: Path) -> str:
        if path == broken:
            raise PermissionError("denied")
        return path.read_text(encoding="utf-8")

    aggregator = _aggregator(read_text=read_text)
    stats = aggregator.scan(workspace + [broken, missing])

    assert stats.processed_files == 3
    assert stats.skipped_files == 2
    assert sorted(aggregator.get_error_files()) == sorted([str(broken), str(missing)])
    assert aggregator.state is ScanState.COMPLETED


def test_cancellation_stops_after_current_batch(tmp_path: Path) -> None:
    files = [_write(tmp_path / f"f{i:03}.js", 'import "lodash";') for i in range(100)]
    aggregator = _aggregator(config=ValidatorConfig(batch_size=20))
    progress = []

    def on_progress(done: int, total: int) -> None:
        progress.append((done, total))
        aggregator.cancel()

    stats = aggregator.scan(files, progress_callback=on_progress)

    assert aggregator.state is ScanState.CANCELLED
    assert 20 <= stats.processed_files < 40
    assert progress == [(20, 100)]
    assert stats.processing_percentage == 20


def test_cancellation_inside_final_batch_is_reported(tmp_path: Path) -> None:
    files = [_write(tmp_path / f"f{i:02}.js", 'import "lodash";') for i in range(40)]
    progress = []

    def read_text(path: Path) -> str:
        aggregator.cancel()
        return path.read_text(encoding="utf-8")

    aggregator = _aggregator(config=ValidatorConfig(batch_size=40), read_text=read_text)
    stats = aggregator.scan(files, progress_callback=lambda done, total: progress.append(done))

    # Files admitted before the cancel landed still complete.
    assert progress == [stats.processed_files]
    if stats.processed_files < 40:
        assert aggregator.state is ScanState.CANCELLED
        assert stats.processing_percentage < 100
    else:
        assert aggregator.state is ScanState.COMPLETED


def test_scan_is_not_reentrant(workspace: List[Path]) -> None:
    aggregator = _aggregator()
    nested = []

    def on_progress(done: int, total: int) -> None:
        nested.append(aggregator.scan(workspace))

    stats = aggregator.scan(workspace, progress_callback=on_progress)

    assert len(nested) == 1
    assert nested[0].processing_percentage == 100
    assert stats.total_imports == 4
    assert aggregator.state is ScanState.COMPLETED


def test_max_files_limits_the_scan(workspace: List[Path]) -> None:
    aggregator = _aggregator(config=ValidatorConfig(max_files=2))

    stats = aggregator.scan(iter(workspace))

    assert stats.total_files == 2
    assert stats.processed_files == 2


def test_enumeration_failure_raises_scan_error() -> None:
    def candidates():
        yield Path("a.js")
        raise OSError("permission denied")

    aggregator = _aggregator()

    with pytest.raises(ScanError):
        aggregator.scan(candidates())
    assert aggregator.state is ScanState.FAILED


def test_reset_and_recalculate(workspace: List[Path]) -> None:
    aggregator = _aggregator()
    aggregator.scan(workspace)

    aggregator.reset_stats()
    assert aggregator.get_stats().total_imports == 0

    stats = aggregator.recalculate_stats()
    assert stats.total_imports == 4
    assert stats.invalid_imports == 1


def test_unused_dependencies(tmp_path: Path) -> None:
    manifest = _write(
        tmp_path / "package.json",
        json.dumps(
            {
                "dependencies": {"lodash": "4.17.21", "left-pad": "1.0.0"},
                "devDependencies": {"typescript": "5.4.0", "@types/node": "20.0.0"},
                "peerDependencies": {"react": "18.0.0"},
            }
        ),
    )
    source = _write(tmp_path / "index.js", 'import _ from "lodash";\n')
    membership = ProjectMembershipIndex(lambda: [manifest])
    aggregator = _aggregator(membership=membership)

    aggregator.scan([source])

    assert aggregator.find_unused_dependencies() == {"left-pad": "1.0.0"}
    (detail,) = aggregator.find_unused_dependency_details()
    assert detail.manifests == [str(manifest)]


def test_deleted_files_stop_counting_as_usage(tmp_path: Path) -> None:
    manifest = _write(
        tmp_path / "package.json",
        json.dumps({"dependencies": {"lodash": "4.17.21", "left-pad": "1.0.0"}}),
    )
    keep = _write(tmp_path / "index.js", 'import _ from "lodash";\n')
    gone = _write(tmp_path / "pad.js", 'import pad from "left-pad";\n')
    store = CacheStore(tmp_path / "cache.db")
    aggregator = _aggregator(membership=ProjectMembershipIndex(lambda: [manifest]), store=store)
    aggregator.scan([keep, gone])
    aggregator.validate_document('import "left-pad";', "untitled.js")
    assert aggregator.find_unused_dependencies() == {}

    gone.unlink()
    assert aggregator.find_unused_dependencies() == {}

    aggregator.validate_document('import _ from "lodash";', "untitled.js")
    assert aggregator.find_unused_dependencies() == {"left-pad": "1.0.0"}
    assert aggregator.get_file_imports(str(gone)) == []
    assert [key for key, _, _ in store.items("files")] == [str(keep.resolve()), "untitled.js"]


def test_statistics_survive_restart(tmp_path: Path, workspace: List[Path]) -> None:
    clock = FakeClock()
    first = _aggregator(store=CacheStore(tmp_path / "cache" / "cache.db"), clock=clock)
    first.scan(workspace)

    second = _aggregator(store=CacheStore(tmp_path / "cache" / "cache.db"), clock=clock)
    restored = second.get_stats()
    assert restored.total_imports == 4
    assert restored.processed_files == 3

    rescanned = second.scan(workspace)
    assert rescanned.total_imports == 4
    assert second.get_all_imports() == {"lodash", "left-pad", "react"}


def test_clear_caches_forgets_everything(tmp_path: Path, workspace: List[Path]) -> None:
    store = CacheStore(tmp_path / "cache.db")
    aggregator = _aggregator(store=store)
    aggregator.scan(workspace)

    aggregator.clear_caches()

    assert aggregator.get_stats().total_imports == 0
    assert aggregator.get_all_imports() == set()
    assert store.items("files") == []
    assert aggregator.get_file_imports(str(workspace[0])) == []


class _ExplodingParser:
    def parse(self, source_text, file_path=None):
        if "explode" in source_text:
            raise ParseError(f"cannot parse {file_path}")
        return NpmCodeParser().parse(source_text, file_path)


def test_parser_failures_are_isolated_per_file(tmp_path: Path) -> None:
    good = _write(tmp_path / "good.js", 'import "lodash";')
    bad = _write(tmp_path / "bad.js", "// explode\n")
    config = ValidatorConfig()
    validator = DocumentValidator(
        config, StubRegistry(existing={"lodash"}), parser=_ExplodingParser(), clock=FakeClock()
    )
    aggregator = WorkspaceAggregator(config, validator)

    stats = aggregator.scan([bad, good])

    assert stats.processed_files == 1
    assert stats.total_imports == 1
    assert aggregator.get_error_files() == [str(bad)]

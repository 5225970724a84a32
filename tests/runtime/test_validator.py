import json
from pathlib import Path

from conftest import FakeClock, FakeSession, StubRegistry
from importvalidator.config import ValidatorConfig
from importvalidator.models import SyntaxKind
from importvalidator.parsers.npm.manifest import ProjectMembershipIndex
from importvalidator.parsers.npm.registry import RegistryClient
from importvalidator.runtime.validator import DocumentValidator, diagnostic_severity

SOURCE = "\n".join(
    [
        'import React from "react";',
        'import { pad } from "left-pad";',
        'import helper from "./helper";',
        'import type { Options } from "@acme/types/options";',
        'const get = require("lodash/get");',
        'import Button from "@/components/Button";',
        'const fs = require("fs");',
    ]
)


def _validator(registry, membership=None, config=None, clock=None) -> DocumentValidator:
    return DocumentValidator(
        config or ValidatorConfig(),
        registry,
        membership,
        clock=clock or FakeClock(),
    )


def test_local_imports_are_dropped_and_order_preserved() -> None:
    registry = StubRegistry(existing={"react", "lodash", "@acme/types"})
    validator = _validator(registry)

    results = validator.validate_document(SOURCE, "src/app.ts")

    assert [(r.import_name, r.kind) for r in results] == [
        ("react", SyntaxKind.ES_IMPORT),
        ("left-pad", SyntaxKind.ES_IMPORT),
        ("@acme/types", SyntaxKind.TYPE_IMPORT),
        ("lodash", SyntaxKind.COMMONJS_REQUIRE),
    ]
    assert [r.exists_on_registry for r in results] == [True, False, True, True]
    assert results[0].is_framework_package
    assert not results[1].is_framework_package
    assert results[0].span.start_line == 0
    assert results[3].span.start_line == 4


def test_validation_is_idempotent_within_cache_window() -> None:
    session = FakeSession()
    session.add_package("react")
    clock = FakeClock()
    registry = RegistryClient(ValidatorConfig(), session=session, sleep=lambda s: None, clock=clock)
    validator = _validator(registry, clock=clock)

    first = validator.validate_document(SOURCE, "src/app.ts")
    calls_after_first = len(session.calls)
    second = validator.validate_document(SOURCE, "src/app.ts")

    assert first == second
    assert len(session.calls) == calls_after_first


def test_expired_document_cache_is_revalidated() -> None:
    registry = StubRegistry(existing={"react"})
    clock = FakeClock()
    validator = _validator(registry, config=ValidatorConfig(cache_timeout=1), clock=clock)

    validator.validate_document('import "react";', "a.js")
    clock.advance(1)
    validator.validate_document('import "react";', "a.js")

    assert registry.calls == ["react", "react"]


def test_bypassing_the_cache_reresolves() -> None:
    registry = StubRegistry(existing={"react"})
    validator = _validator(registry)

    validator.validate_document('import "react";', "a.js")
    validator.validate_document('import "react";', "a.js", use_cache=False)

    assert registry.calls == ["react", "react"]


def test_one_failing_lookup_does_not_affect_others() -> None:
    registry = StubRegistry(existing={"react", "lodash"}, failing={"left-pad"})
    validator = _validator(registry)

    results = validator.validate_document(SOURCE, "src/app.ts")

    by_name = {r.import_name: r for r in results}
    assert not by_name["left-pad"].exists_on_registry
    assert by_name["left-pad"].package_metadata is None
    assert by_name["react"].exists_on_registry
    assert by_name["lodash"].exists_on_registry


def test_duplicate_packages_are_resolved_once() -> None:
    registry = StubRegistry(existing={"lodash"})
    validator = _validator(registry)
    source = 'import a from "lodash/a";\nimport b from "lodash/b";\nrequire("lodash");\n'

    results = validator.validate_document(source, "dup.js")

    assert len(results) == 3
    assert registry.calls == ["lodash"]


def test_project_dependency_flag(tmp_path: Path) -> None:
    manifest = tmp_path / "package.json"
    manifest.write_text(json.dumps({"dependencies": {"left-pad": "1.0.0"}}), encoding="utf-8")
    membership = ProjectMembershipIndex()
    membership.reload([manifest])
    validator = _validator(StubRegistry(existing={"left-pad"}), membership=membership)

    (result,) = validator.validate_document('import pad from "left-pad";', "x.js")

    assert result.is_project_dependency


def test_invalidate_and_get_cached() -> None:
    validator = _validator(StubRegistry())

    validator.validate_document('import "react";', "a.js")
    assert validator.get_cached("a.js") is not None

    validator.invalidate("a.js")
    assert validator.get_cached("a.js") is None


def test_diagnostic_severity_levels() -> None:
    config = ValidatorConfig(severity_level="error", framework_severity_level="hint")
    validator = _validator(StubRegistry(existing={"left-pad"}), config=config)
    source = 'import "left-pad";\nimport "react";\nimport "nonexistent-pkg";\n'

    found, framework, missing = validator.validate_document(source, "s.js")

    assert diagnostic_severity(found, config) is None
    assert diagnostic_severity(framework, config) == "hint"
    assert diagnostic_severity(missing, config) == "error"

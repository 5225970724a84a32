from pathlib import Path

import pytest

from importvalidator.models import SyntaxKind
from importvalidator.parsers.npm.code_parser import NpmCodeParser


def _pairs(occurrences):
    return [(o.specifier, o.kind) for o in occurrences]


@pytest.fixture
def parser() -> NpmCodeParser:
    return NpmCodeParser()


def test_es_module_import_forms(parser: NpmCodeParser) -> None:
    source = "\n".join(
        [
            'import React from "react";',
            "import { useState, useEffect } from 'react-dom';",
            'import * as _ from "lodash";',
            'import "./styles.css";',
            'import axios, { AxiosError } from "axios";',
        ]
    )

    occurrences = parser.parse(source, Path("app.jsx"))

    assert _pairs(occurrences) == [
        ("react", SyntaxKind.ES_IMPORT),
        ("react-dom", SyntaxKind.ES_IMPORT),
        ("lodash", SyntaxKind.ES_IMPORT),
        ("./styles.css", SyntaxKind.ES_IMPORT),
        ("axios", SyntaxKind.ES_IMPORT),
    ]


def test_type_only_imports(parser: NpmCodeParser) -> None:
    source = "\n".join(
        [
            'import type { Request } from "express";',
            'import { type Schema, type Infer } from "zod";',
            'import { type Options, render } from "ejs";',
            'import Default, { type Extra } from "mixed";',
        ]
    )

    occurrences = parser.parse(source, Path("types.ts"))

    assert _pairs(occurrences) == [
        ("express", SyntaxKind.TYPE_IMPORT),
        ("zod", SyntaxKind.TYPE_IMPORT),
        ("ejs", SyntaxKind.ES_IMPORT),
        ("mixed", SyntaxKind.ES_IMPORT),
    ]


def test_commonjs_requires(parser: NpmCodeParser) -> None:
    source = "\n".join(
        [
            'const express = require("express");',
            "require('dotenv').config();",
            "function load() {",
            "  return require(`chalk`);",
            "}",
            "const dynamicName = require(name);",
        ]
    )

    occurrences = parser.parse(source, Path("server.js"))

    assert _pairs(occurrences) == [
        ("express", SyntaxKind.COMMONJS_REQUIRE),
        ("dotenv", SyntaxKind.COMMONJS_REQUIRE),
        ("chalk", SyntaxKind.COMMONJS_REQUIRE),
    ]


def test_typescript_import_equals_require(parser: NpmCodeParser) -> None:
    occurrences = parser.parse('import fs = require("fs-extra");\n', Path("legacy.ts"))

    assert _pairs(occurrences) == [("fs-extra", SyntaxKind.COMMONJS_REQUIRE)]


def test_dynamic_imports_and_reexports(parser: NpmCodeParser) -> None:
    source = "\n".join(
        [
            'export * from "rxjs";',
            'export { map } from "rxjs/operators";',
            'export type { Theme } from "@mui/material";',
            "export const local = 1;",
            'const chart = await import("chart.js");',
        ]
    )

    occurrences = parser.parse(source, Path("index.ts"))

    assert _pairs(occurrences) == [
        ("rxjs", SyntaxKind.ES_IMPORT),
        ("rxjs/operators", SyntaxKind.ES_IMPORT),
        ("@mui/material", SyntaxKind.TYPE_IMPORT),
        ("chart.js", SyntaxKind.ES_IMPORT),
    ]


def test_spans_are_zero_based_lines(parser: NpmCodeParser) -> None:
    source = "// header\n\nimport lodash from 'lodash';\n"

    (occurrence,) = parser.parse(source, Path("a.js"))

    assert occurrence.span.start_line == 2
    assert occurrence.span.start_col == 0
    assert occurrence.span.end_line == 2
    assert occurrence.span.end_col == len("import lodash from 'lodash';")


def test_syntax_error_does_not_hide_other_imports(parser: NpmCodeParser) -> None:
    source = "\n".join(
        [
            'import a from "alpha";',
            "const = = ;;; {{",
            'import b from "beta";',
        ]
    )

    specifiers = {o.specifier for o in parser.parse(source, Path("broken.js"))}

    assert {"alpha", "beta"} <= specifiers


def test_syntax_error_ignores_commented_out_imports(parser: NpmCodeParser) -> None:
    source = "\n".join(
        [
            '// import x from "ghost-pkg";',
            "/* const y = require(\"phantom\");",
            '   import "spectre"; */',
            'import a from "lodash";',
            "const = ;",
        ]
    )

    occurrences = parser.parse(source, Path("broken.js"))

    assert [o.specifier for o in occurrences] == ["lodash"]
    assert occurrences[0].span.start_line == 3


def test_regex_fallback_keeps_slashes_inside_strings(
    parser: NpmCodeParser, monkeypatch: pytest.MonkeyPatch
) -> None:
    def _boom(grammar: str):
        raise RuntimeError("grammar unavailable")

    monkeypatch.setattr(parser, "_get_parser", _boom)
    source = "\n".join(
        [
            'const url = "https://example.com"; import a from "alpha";',
            "// require('ghost-pkg');",
            'const b = require("beta"); /* import "gamma"; */',
        ]
    )

    occurrences = parser.parse(source, Path("fallback.js"))

    assert [o.specifier for o in occurrences] == ["alpha", "beta"]
    assert occurrences[0].span.start_col == len('const url = "https://example.com"; ')


def test_regex_fallback_when_tree_sitter_fails(
    parser: NpmCodeParser, monkeypatch: pytest.MonkeyPatch
) -> None:
    def _boom(grammar: str):
        raise RuntimeError("grammar unavailable")

    monkeypatch.setattr(parser, "_get_parser", _boom)
    source = "\n".join(
        [
            'import React from "react";',
            'import type { Foo } from "foo-types";',
            'const get = require("lodash/get");',
            'export * from "rxjs";',
            'const m = await import("moment");',
        ]
    )

    occurrences = parser.parse(source, Path("fallback.ts"))

    assert _pairs(occurrences) == [
        ("react", SyntaxKind.ES_IMPORT),
        ("foo-types", SyntaxKind.TYPE_IMPORT),
        ("lodash/get", SyntaxKind.COMMONJS_REQUIRE),
        ("rxjs", SyntaxKind.ES_IMPORT),
        ("moment", SyntaxKind.ES_IMPORT),
    ]
    assert occurrences[1].span.start_line == 1
    assert occurrences[2].span.start_col == len("const get = ")


def test_no_imports(parser: NpmCodeParser) -> None:
    assert parser.parse("const x = 1;\nconsole.log(x);\n", Path("plain.js")) == []
    assert parser.parse("", None) == []


def test_can_handle_file(parser: NpmCodeParser) -> None:
    assert parser.can_handle_file(Path("component.tsx"))
    assert parser.can_handle_file(Path("module.MJS"))
    assert not parser.can_handle_file(Path("style.css"))

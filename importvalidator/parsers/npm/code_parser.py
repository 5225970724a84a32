"""NPM code parser for JavaScript/TypeScript files.

Uses tree-sitter to parse JS/TS source text and extract import/require
occurrences with their source spans. When the structural parse fails, a
regular-expression scan over the raw text recovers the common forms so a
single malformed construct never hides the rest of the file's imports.
"""

import bisect
import logging
import re
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Tuple

import tree_sitter_javascript as ts_javascript
import tree_sitter_typescript as ts_typescript
from tree_sitter import Language, Parser

from importvalidator.config.defaults import SOURCE_SUFFIXES
from importvalidator.models import ImportOccurrence, SourceSpan, SyntaxKind
from importvalidator.parsers.base import BaseCodeParser

logger = logging.getLogger("importvalidator.parsers.npm.code_parser")

# Grammar selection by file suffix; anything unknown is parsed as TSX, which
# accepts plain JavaScript, TypeScript annotations and JSX.
_GRAMMAR_BY_SUFFIX: Dict[str, str] = {
    ".js": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".jsx": "javascript",
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".tsx": "tsx",
}
_DEFAULT_GRAMMAR = "tsx"

# import x from 'module' / import { x } from 'module' / import * as x from
# 'module' / import 'module' / import type X from 'module'
_IMPORT_PATTERN = re.compile(
    r"""\bimport\s+(?:(type)\s+)?(?:([\w\s{},*$]+?)\s+from\s+)?['"]([^'"\n]+)['"]"""
)
# require('module')
_REQUIRE_PATTERN = re.compile(r"""\brequire\s*\(\s*['"]([^'"\n]+)['"]\s*\)""")
# import('module')
_DYNAMIC_IMPORT_PATTERN = re.compile(r"""\bimport\s*\(\s*['"]([^'"\n]+)['"]\s*\)""")
# export * from 'module' / export { x } from 'module' / export type { X } from
_EXPORT_PATTERN = re.compile(
    r"""\bexport\s+(?:(type)\s+)?(?:[\w\s{},*$]+?\s+)?from\s+['"]([^'"\n]+)['"]"""
)
_INLINE_TYPE_SPECIFIER = re.compile(r"^type\s+\S")
# String literals are matched only so that '//' inside them is not taken for
# a comment.
_STRING_OR_COMMENT = re.compile(
    r"""(?P<string>'(?:\\.|[^'\\\n])*'|"(?:\\.|[^"\\\n])*"|`(?:\\.|[^`\\])*`)"""
    r"""|(?P<comment>//[^\n]*|/\*.*?(?:\*/|\Z))""",
    re.DOTALL,
)


def _blank_comments(content: str) -> str:
    """Replace comment text with spaces, keeping newlines and every offset."""

    def blank(match: "re.Match[str]") -> str:
        if match.group("comment") is None:
            return match.group(0)
        return re.sub(r"[^\n]", " ", match.group(0))

    return _STRING_OR_COMMENT.sub(blank, content)


def _build_language(grammar: str) -> Language:
    if grammar == "javascript":
        return Language(ts_javascript.language())
    if grammar == "typescript":
        return Language(ts_typescript.language_typescript())
    return Language(ts_typescript.language_tsx())


class NpmCodeParser(BaseCodeParser):
    """Code parser for JavaScript/TypeScript files.

    Extracts:
    - ES6 imports: import x from 'module' (tagged ``ES_IMPORT``)
    - Type imports: import type X from 'module', import { type X } from
      'module', export type { X } from 'module' (tagged ``TYPE_IMPORT``)
    - CommonJS requires: require('module') anywhere, and TypeScript
      import x = require('module') (tagged ``COMMONJS_REQUIRE``)
    - Dynamic imports and re-exports (tagged ``ES_IMPORT``)
    """

    NAME = "npm_code_parser"
    ECOSYSTEM = "npm"
    SUFFIXES = list(SOURCE_SUFFIXES)

    def __init__(self) -> None:
        """Initialize the code parser.

        tree-sitter ``Parser`` objects are not thread-safe, so each thread
        lazily builds its own set.
        """
        self._local = threading.local()

    def _get_parser(self, grammar: str) -> Parser:
        parsers: Optional[Dict[str, Parser]] = getattr(self._local, "parsers", None)
        if parsers is None:
            parsers = {}
            self._local.parsers = parsers
        parser = parsers.get(grammar)
        if parser is None:
            parser = Parser(_build_language(grammar))
            parsers[grammar] = parser
            logger.debug(
                "NpmCodeParser: %s parser initialized for thread %s",
                grammar,
                threading.current_thread().name,
            )
        return parser

    def parse(
        self, source_text: str, file_path: Optional[Path] = None
    ) -> List[ImportOccurrence]:
        """Parse JavaScript/TypeScript source text.

        Args:
            source_text: Full document text.
            file_path: Optional path whose suffix selects the grammar.

        Returns:
            List[ImportOccurrence]: Occurrences in source order. Empty only
            when neither tree-sitter nor the regex scan finds anything.
        """
        grammar = self._grammar_for(file_path)
        source = source_text.encode("utf-8")

        try:
            tree = self._get_parser(grammar).parse(source)
            occurrences = self._extract_from_tree(tree.root_node, source)
        except Exception as e:
            logger.debug(
                "tree-sitter parsing failed for %s, falling back to regex: %s",
                file_path or "<document>",
                e,
            )
            return self._parse_with_regex(source_text)

        if tree.root_node.has_error:
            # Partial tree: recover imports tree-sitter could not place.
            logger.debug(
                "Syntax errors in %s, merging regex scan results",
                file_path or "<document>",
            )
            occurrences = self._merge(occurrences, self._parse_with_regex(source_text))

        return occurrences

    def _grammar_for(self, file_path: Optional[Path]) -> str:
        if file_path is None:
            return _DEFAULT_GRAMMAR
        return _GRAMMAR_BY_SUFFIX.get(Path(file_path).suffix.lower(), _DEFAULT_GRAMMAR)

    # ------------------------------------------------------------------
    # tree-sitter extraction
    # ------------------------------------------------------------------

    def _extract_from_tree(self, root: Any, source: bytes) -> List[ImportOccurrence]:
        """Walk the syntax tree in document order collecting occurrences.

        An explicit stack is used instead of recursion so that deeply nested
        generated code cannot hit the interpreter recursion limit.
        """
        occurrences: List[ImportOccurrence] = []
        stack = [root]

        while stack:
            node = stack.pop()
            node_type = node.type

            if node_type == "import_statement":
                occurrence = self._from_import_statement(node, source)
                if occurrence:
                    occurrences.append(occurrence)
                continue

            if node_type == "export_statement":
                occurrence = self._from_export_statement(node, source)
                if occurrence:
                    occurrences.append(occurrence)

            elif node_type == "call_expression":
                occurrence = self._from_call_expression(node, source)
                if occurrence:
                    occurrences.append(occurrence)

            stack.extend(reversed(node.children))

        return occurrences

    def _from_import_statement(self, node: Any, source: bytes) -> Optional[ImportOccurrence]:
        # import x = require('module')
        require_clause = self._find_child_by_type(node, "import_require_clause")
        if require_clause is not None:
            source_node = require_clause.child_by_field_name("source") or self._find_child_by_type(
                require_clause, "string"
            )
            specifier = self._extract_string_value(source_node, source)
            if specifier is None:
                return None
            return ImportOccurrence(specifier, self._span(node), SyntaxKind.COMMONJS_REQUIRE)

        source_node = node.child_by_field_name("source") or self._find_child_by_type(node, "string")
        specifier = self._extract_string_value(source_node, source)
        if specifier is None:
            return None

        kind = SyntaxKind.ES_IMPORT
        if self._find_child_by_type(node, "type") is not None or self._is_inline_type_only(node):
            kind = SyntaxKind.TYPE_IMPORT
        return ImportOccurrence(specifier, self._span(node), kind)

    def _from_export_statement(self, node: Any, source: bytes) -> Optional[ImportOccurrence]:
        source_node = node.child_by_field_name("source")
        if source_node is None:
            return None
        specifier = self._extract_string_value(source_node, source)
        if specifier is None:
            return None
        kind = (
            SyntaxKind.TYPE_IMPORT
            if self._find_child_by_type(node, "type") is not None
            else SyntaxKind.ES_IMPORT
        )
        return ImportOccurrence(specifier, self._span(node), kind)

    def _from_call_expression(self, node: Any, source: bytes) -> Optional[ImportOccurrence]:
        func = node.child_by_field_name("function")
        if func is None:
            return None

        if func.type == "import":
            kind = SyntaxKind.ES_IMPORT
        elif func.type == "identifier" and self._text(func, source) == "require":
            kind = SyntaxKind.COMMONJS_REQUIRE
        else:
            return None

        args = node.child_by_field_name("arguments")
        if args is None or not args.named_children:
            return None
        first_arg = args.named_children[0]
        if first_arg.type not in ("string", "template_string"):
            return None
        specifier = self._extract_string_value(first_arg, source)
        if specifier is None:
            return None
        return ImportOccurrence(specifier, self._span(node), kind)

    def _is_inline_type_only(self, node: Any) -> bool:
        """True for ``import { type A, type B } from 'x'``.

        Any default or namespace binding, or a single value specifier, makes
        the statement a value import.
        """
        clause = self._find_child_by_type(node, "import_clause")
        if clause is None:
            return False

        specifiers = []
        for child in clause.named_children:
            if child.type != "named_imports":
                return False
            specifiers.extend(c for c in child.named_children if c.type == "import_specifier")

        if not specifiers:
            return False
        return all(self._find_child_by_type(spec, "type") is not None for spec in specifiers)

    def _find_child_by_type(self, node: Any, child_type: str) -> Optional[Any]:
        """Find first child node of given type.

        Args:
            node: Parent node.
            child_type: Type to search for.

        Returns:
            Child node or None.
        """
        for child in node.children:
            if child.type == child_type:
                return child
        return None

    def _text(self, node: Any, source: bytes) -> str:
        return source[node.start_byte : node.end_byte].decode("utf-8", errors="replace")

    def _extract_string_value(self, node: Optional[Any], source: bytes) -> Optional[str]:
        """Extract string value from a string node.

        Args:
            node: String node.
            source: Encoded source text.

        Returns:
            String value without quotes, or None for non-literals and
            template strings with substitutions.
        """
        if node is None:
            return None
        text = self._text(node, source)
        if len(text) < 2:
            return None
        if (text.startswith('"') and text.endswith('"')) or (
            text.startswith("'") and text.endswith("'")
        ):
            return text[1:-1]
        if text.startswith("`") and text.endswith("`") and "${" not in text:
            return text[1:-1]
        return None

    def _span(self, node: Any) -> SourceSpan:
        start_row, start_col = node.start_point[0], node.start_point[1]
        end_row, end_col = node.end_point[0], node.end_point[1]
        return SourceSpan(start_row, start_col, end_row, end_col)

    # ------------------------------------------------------------------
    # Regex fallback
    # ------------------------------------------------------------------

    def _parse_with_regex(self, content: str) -> List[ImportOccurrence]:
        """Parse source code using regex patterns.

        Args:
            content: Source code content.

        Returns:
            List[ImportOccurrence]: Occurrences sorted by position.
        """
        line_starts = [0] + [m.end() for m in re.finditer("\n", content)]
        code = _blank_comments(content)
        found: Dict[int, ImportOccurrence] = {}

        def record(start: int, end: int, specifier: str, kind: SyntaxKind) -> None:
            if start not in found:
                found[start] = ImportOccurrence(
                    specifier,
                    self._offsets_to_span(content, line_starts, start, end),
                    kind,
                )

        for match in _IMPORT_PATTERN.finditer(code):
            is_type = bool(match.group(1)) or self._clause_is_type_only(match.group(2))
            record(
                match.start(),
                match.end(),
                match.group(3),
                SyntaxKind.TYPE_IMPORT if is_type else SyntaxKind.ES_IMPORT,
            )

        for match in _EXPORT_PATTERN.finditer(code):
            kind = SyntaxKind.TYPE_IMPORT if match.group(1) else SyntaxKind.ES_IMPORT
            record(match.start(), match.end(), match.group(2), kind)

        for match in _REQUIRE_PATTERN.finditer(code):
            record(match.start(), match.end(), match.group(1), SyntaxKind.COMMONJS_REQUIRE)

        for match in _DYNAMIC_IMPORT_PATTERN.finditer(code):
            record(match.start(), match.end(), match.group(1), SyntaxKind.ES_IMPORT)

        return [found[offset] for offset in sorted(found)]

    def _clause_is_type_only(self, clause: Optional[str]) -> bool:
        if not clause:
            return False
        clause = clause.strip()
        if not (clause.startswith("{") and clause.endswith("}")):
            return False
        names = [part.strip() for part in clause[1:-1].split(",") if part.strip()]
        return bool(names) and all(_INLINE_TYPE_SPECIFIER.match(name) for name in names)

    def _offsets_to_span(
        self, content: str, line_starts: List[int], start: int, end: int
    ) -> SourceSpan:
        start_line, start_col = self._offset_to_point(content, line_starts, start)
        end_line, end_col = self._offset_to_point(content, line_starts, end)
        return SourceSpan(start_line, start_col, end_line, end_col)

    def _offset_to_point(
        self, content: str, line_starts: List[int], offset: int
    ) -> Tuple[int, int]:
        line = bisect.bisect_right(line_starts, offset) - 1
        line_start = line_starts[line]
        # Byte columns, matching tree-sitter points.
        column = len(content[line_start:offset].encode("utf-8"))
        return line, column

    def _merge(
        self,
        primary: List[ImportOccurrence],
        fallback: List[ImportOccurrence],
    ) -> List[ImportOccurrence]:
        """Add fallback occurrences whose (specifier, line) tree-sitter missed."""
        seen: Set[Tuple[str, int]] = {(o.specifier, o.span.start_line) for o in primary}
        merged = list(primary)
        for occurrence in fallback:
            key = (occurrence.specifier, occurrence.span.start_line)
            if key not in seen:
                seen.add(key)
                merged.append(occurrence)
        merged.sort(key=lambda o: (o.span.start_line, o.span.start_col))
        return merged

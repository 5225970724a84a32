"""Rich renderers for validation results, statistics and reports."""

from __future__ import annotations

from typing import Callable, Dict, List, Optional

from rich.console import Console
from rich.table import Table
from rich.text import Text

from importvalidator.models import ImportResult, PackageMetadata, ProcessingStats, UnusedDependency

_SEVERITY_STYLES = {
    "error": "bold red",
    "warning": "yellow",
    "info": "cyan",
    "hint": "dim",
}


def _status_text(result: ImportResult, severity: Optional[str]) -> Text:
    if result.exists_on_registry:
        label = "project" if result.is_project_dependency else "ok"
        return Text(label, style="green")
    return Text(severity or "missing", style=_SEVERITY_STYLES.get(severity or "", "red"))


def render_results(
    console: Console,
    document: str,
    results: List[ImportResult],
    severity_for: Callable[[ImportResult], Optional[str]],
) -> None:
    """Print one table of import results for a document."""
    table = Table(title=document, title_justify="left", show_lines=False)
    table.add_column("Line", justify="right", style="dim")
    table.add_column("Package")
    table.add_column("Kind")
    table.add_column("Status")
    table.add_column("Version")
    table.add_column("Downloads/month", justify="right")

    for result in results:
        metadata = result.package_metadata
        name = Text(result.import_name)
        if result.is_framework_package:
            name.append(" (framework)", style="magenta")
        table.add_row(
            str(result.span.start_line + 1),
            name,
            result.kind.value,
            _status_text(result, severity_for(result)),
            metadata.latest_version if metadata else "",
            f"{metadata.monthly_downloads:,}" if metadata else "",
        )
    console.print(table)


def render_stats(console: Console, stats: ProcessingStats) -> None:
    table = Table(title="Import validation summary", title_justify="left", show_header=False)
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    rows = [
        ("Files", stats.total_files),
        ("Processed", stats.processed_files),
        ("Skipped", stats.skipped_files),
        ("Unchanged", stats.unchanged_files),
        ("Imports", stats.total_imports),
        ("Valid", stats.valid_imports),
        ("Invalid", stats.invalid_imports),
        ("Framework", stats.framework_imports),
        ("Project dependencies", stats.project_imports),
        ("Time", f"{stats.processing_time_ms / 1000.0:.2f}s"),
    ]
    for label, value in rows:
        table.add_row(label, str(value))
    console.print(table)

    if stats.error_files:
        console.print(Text(f"{len(stats.error_files)} file(s) could not be processed:", style="red"))
        for path in stats.error_files:
            console.print(f"  {path}")


def render_unused(console: Console, unused: List[UnusedDependency]) -> None:
    if not unused:
        console.print(Text("No unused dependencies found.", style="green"))
        return
    table = Table(title="Unused dependencies", title_justify="left")
    table.add_column("Package")
    table.add_column("Version")
    table.add_column("Type")
    table.add_column("Declared in")
    for dep in unused:
        table.add_row(dep.name, dep.version, dep.dependency_type.value, "\n".join(dep.manifests))
    console.print(table)


def render_package(console: Console, metadata: PackageMetadata) -> None:
    table = Table(title=metadata.name, title_justify="left", show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    fields: Dict[str, str] = {
        "Latest version": metadata.latest_version,
        "Description": metadata.description,
        "License": metadata.license,
        "Author": metadata.author,
        "Homepage": metadata.homepage,
        "Repository": metadata.repository_url,
        "Keywords": ", ".join(metadata.keywords),
        "Downloads/month": f"{metadata.monthly_downloads:,}",
    }
    if metadata.is_project_dependency:
        fields["Project dependency"] = "yes"
    for label, value in fields.items():
        if value:
            table.add_row(label, value)
    console.print(table)

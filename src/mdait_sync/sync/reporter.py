"""Sync report formatting functions.

Provides human-readable and machine-readable output for sync runs:

- ``format_sync_report`` -- full post-sync summary.
- ``format_file_result`` -- one line per synced file.
- ``format_revision_diff`` -- unified diff of a source unit that moved
  under an existing translation.
- ``report_to_json`` -- structured dict for JSON output.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .diff import unified_diff

if TYPE_CHECKING:
    from .models import FileSyncResult, SyncReport

# ------------------------------------------------------------------
# Human-readable report
# ------------------------------------------------------------------


def format_file_result(result: FileSyncResult) -> str:
    """Format one file result as a single line.

    Examples::

        docs/en/a.md -> docs/ja/a.md: +1 ~0 -2, 3 to translate
        docs/en/b.md -> docs/ja/b.md: ERROR Invalid YAML in front matter
    """
    prefix = f"{result.source_path} -> {result.target_path}"
    if not result.success:
        return f"{prefix}: ERROR {result.error}"
    if result.skipped:
        return f"{prefix}: skipped"

    parts: list[str] = []
    if result.diff is not None:
        parts.append(
            f"+{result.diff.added} ~{result.diff.modified} -{result.diff.deleted}"
        )
    if result.needs_translation:
        parts.append(f"{result.needs_translation} to translate")
    if result.conflicts:
        parts.append(f"{result.conflicts} conflicts")
    if not result.written:
        parts.append("unchanged")
    return f"{prefix}: {', '.join(parts)}"


def format_sync_report(report: SyncReport) -> str:
    """Format a complete sync report as human-readable text.

    Sections are only included when they contain at least one result.
    Skipped files are summarised by count only.

    Args:
        report: The completed sync report.

    Returns:
        Multi-line formatted string.
    """
    lines: list[str] = []

    header = "Sync report"
    if report.cancelled:
        header += " (CANCELLED)"
    lines.append(header)
    lines.append(f"Started: {report.started_at}")
    if report.completed_at:
        lines.append(f"Completed: {report.completed_at}")
    lines.append("")

    to_translate = sum(r.needs_translation for r in report.results)
    lines.append(
        f"Synced {len(report.synced)} of {len(report.results)} files: "
        f"{len(report.written)} written, "
        f"{to_translate} units to translate, "
        f"{len(report.conflicted)} with conflicts, "
        f"{len(report.errors)} errors"
    )
    lines.append("")

    if report.written:
        lines.append("Written:")
        for r in report.written:
            lines.append(f"  {format_file_result(r)}")
        lines.append("")

    if report.conflicted:
        lines.append("Conflicts:")
        for r in report.conflicted:
            lines.append(f"  {r.target_path}: {r.conflicts} unit(s) need solve-conflict")
        lines.append("")

    if report.errors:
        lines.append("Errors:")
        for r in report.errors:
            lines.append(f"  {r.source_path}: {r.error}")
        lines.append("")

    if report.skipped:
        lines.append(f"Skipped: {len(report.skipped)} files")
        lines.append("")

    if report.registry_collected:
        lines.append(
            f"Registry: {report.registry_collected} unused entries removed"
        )
        lines.append("")

    return "\n".join(lines).rstrip()


# ------------------------------------------------------------------
# Revision diff
# ------------------------------------------------------------------


def format_revision_diff(old: str, new: str, label: str) -> str:
    """Format the source change behind a ``revise@`` unit for review.

    Args:
        old: Source content the translation was made from.
        new: Current source content.
        label: Unit title or hash used in the diff header.

    Returns:
        Multi-line formatted string with the unified diff.
    """
    lines = [f"Source changed: {label}", ""]
    diff_text = unified_diff(old, new, label)
    if diff_text:
        lines.append(diff_text.rstrip())
    else:
        lines.append("(no textual differences)")
    return "\n".join(lines)


# ------------------------------------------------------------------
# JSON output
# ------------------------------------------------------------------


def report_to_json(report: SyncReport) -> dict:
    """Convert a sync report to a structured dict for JSON serialisation.

    Args:
        report: The sync report.

    Returns:
        Dict with timing, counts and per-file details.
    """
    results_list = []
    for r in report.results:
        entry: dict = {
            "source_path": r.source_path,
            "target_path": r.target_path,
            "success": r.success,
            "skipped": r.skipped,
            "written": r.written,
            "changes": dict(r.changes),
            "needs_translation": r.needs_translation,
            "conflicts": r.conflicts,
        }
        if r.diff is not None:
            entry["diff"] = r.diff.model_dump()
        if r.error:
            entry["error"] = r.error
        results_list.append(entry)

    return {
        "started_at": report.started_at,
        "completed_at": report.completed_at,
        "cancelled": report.cancelled,
        "registry_collected": report.registry_collected,
        "counts": {
            "total": len(report.results),
            "synced": len(report.synced),
            "written": len(report.written),
            "conflicted": len(report.conflicted),
            "errors": len(report.errors),
            "skipped": len(report.skipped),
        },
        "results": results_list,
    }

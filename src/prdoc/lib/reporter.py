"""
Aggregate reporter for prdoc records.

Discovers record files, parses each one independently (optionally on a thread
pool), and groups the resulting entries by crate, bump level or audience into
a deterministic report.
"""

import json
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from prdoc.lib.errors import NoRecordsFound
from prdoc.lib.logger import Logger
from prdoc.lib.models import Bump, Entry, ParseResult
from prdoc.lib.parser import DEFAULT_MARKER, parse_file

DIMENSIONS = ("crate", "bump", "audience")
FORMATS = ("text", "json", "yaml")


@dataclass
class RunSummary(ParseResult):
    """Everything one run read: the files, the entries and the failures."""

    files: list[str] = field(default_factory=list)


def discover(paths: Iterable[str | Path], extension: str = "prdoc") -> list[Path]:
    """
    Expand files and directories into a sorted list of record files.

    Directories are searched recursively for `*.<extension>`; files named
    explicitly are kept whatever their suffix. Missing paths are logged and
    skipped.

    Args:
        paths (Iterable[str | Path]): Files and/or directories.
        extension (str): Suffix (without the dot) searched for in directories.

    Returns:
        list[Path]: De-duplicated files in lexical path order.
    """

    found: dict[Path, Path] = {}

    for raw in paths:
        path = Path(raw)
        if path.is_dir():
            candidates = [p for p in path.rglob(f"*.{extension}") if p.is_file()]
        elif path.is_file():
            candidates = [path]
        else:
            Logger.warning(f"Path does not exist: {path}")
            continue

        for candidate in candidates:
            found.setdefault(candidate.resolve(), candidate)

    return sorted(found.values(), key=lambda p: p.as_posix())


def collect(
    paths: Iterable[str | Path],
    marker: str = DEFAULT_MARKER,
    extension: str = "prdoc",
    workers: int = 1,
) -> RunSummary:
    """
    Discover and parse every record file under `paths`.

    Files are read independently; results are merged in discovery order by
    the calling thread.

    Raises:
        NoRecordsFound: If no file is discovered or the files hold no records.
    """

    files = discover(paths, extension)
    if not files:
        raise NoRecordsFound(f"No .{extension} files found.")

    Logger.debug(f"Parsing {len(files)} file(s) with {workers} worker(s)")

    if workers > 1:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            results = list(pool.map(lambda f: parse_file(f, marker), files))
    else:
        results = [parse_file(f, marker) for f in files]

    summary = RunSummary(files=[str(f) for f in files])
    for path, result in zip(files, results):
        if result.total == 0:
            Logger.warning(f"{path}: no records found")
        summary.extend(result)

    if summary.total == 0:
        raise NoRecordsFound(f"No records found in {len(files)} file(s).")

    return summary


def _ref(entry: Entry) -> dict[str, Any]:
    return {"title": entry.title, "source": entry.source, "index": entry.index}


def group(entries: Iterable[Entry], dimension: str) -> list[dict[str, Any]]:
    """
    Group entries by `crate`, `bump` or `audience`.

    Groups are sorted by key; items keep discovery order within a group. A
    crate listed twice in one record appears twice in its group.

    Returns:
        list[dict]: `{"key": ..., "items": [...]}` per group. Crate groups
        also carry `"bump"`, the most severe bump among their items.
    """

    if dimension not in DIMENSIONS:
        raise ValueError(f"Unknown grouping '{dimension}' (expected one of {', '.join(DIMENSIONS)})")

    groups: dict[str, list[dict[str, Any]]] = {}
    bumps: dict[str, list[Bump]] = {}

    for entry in entries:
        if dimension == "crate":
            for crate in entry.crates:
                groups.setdefault(crate.name, []).append({**_ref(entry), "bump": crate.bump.value})
                bumps.setdefault(crate.name, []).append(crate.bump)
        elif dimension == "bump":
            for crate in entry.crates:
                groups.setdefault(crate.bump.value, []).append({**_ref(entry), "crate": crate.name})
        else:
            for audience in entry.audiences:
                groups.setdefault(audience.value, []).append(_ref(entry))

    out = []
    for key in sorted(groups):
        item: dict[str, Any] = {"key": key}
        if dimension == "crate":
            item["bump"] = Bump.most_severe(bumps[key]).value
        item["items"] = groups[key]
        out.append(item)

    return out


def build_report(summary: RunSummary, dimension: str) -> dict[str, Any]:
    """Build the JSON-friendly report for a run."""

    return {
        "group_by": dimension,
        "groups": group(summary.entries, dimension),
        "summary": {
            "files": len(summary.files),
            "entries": len(summary.entries),
            "failures": [f.describe() for f in summary.failures],
            "warnings": [str(w) for w in summary.warnings],
        },
    }


def _render_text(report: dict[str, Any]) -> str:
    dimension = report["group_by"]
    lines = [f"Release report (grouped by {dimension})", ""]

    for grp in report["groups"]:
        header = grp["key"]
        if "bump" in grp:
            header += f" [{grp['bump']}]"
        lines.append(header)

        for item in grp["items"]:
            where = f"{item['source']}#{item['index']}"
            if dimension == "crate":
                lines.append(f"  - {item['bump']:<5}  {item['title']} ({where})")
            elif dimension == "bump":
                lines.append(f"  - {item['crate']}: {item['title']} ({where})")
            else:
                lines.append(f"  - {item['title']} ({where})")
        lines.append("")

    s = report["summary"]
    lines.append(
        f"Summary: {s['entries']} record(s) from {s['files']} file(s), "
        f"{len(s['failures'])} failure(s), {len(s['warnings'])} warning(s)"
    )
    for title, messages in (("Failures", s["failures"]), ("Warnings", s["warnings"])):
        if messages:
            lines.append(f"{title}:")
            lines.extend(f"  - {m}" for m in messages)

    return "\n".join(lines) + "\n"


def render(report: dict[str, Any], fmt: str = "text") -> str:
    """
    Serialize a report.

    Args:
        report (dict): Output of `build_report`.
        fmt (str): One of `text`, `json` or `yaml`.

    Returns:
        str: The rendered report; identical reports render byte-identically.
    """

    if fmt == "text":
        return _render_text(report)
    if fmt == "json":
        return json.dumps(report, indent=2, ensure_ascii=False) + "\n"
    if fmt == "yaml":
        return yaml.safe_dump(report, sort_keys=False, allow_unicode=True, default_flow_style=False)

    raise ValueError(f"Unknown format '{fmt}' (expected one of {', '.join(FORMATS)})")

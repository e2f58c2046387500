"""
Record parser for prdoc files.

A physical file (a "container") holds one or more YAML records separated by a
marker line. Each record is validated on its own: a broken record is reported
as a `RecordFailure` and its siblings are still returned.
"""

from pathlib import Path
from typing import Any

import yaml

from prdoc.lib.errors import DuplicateCrateInRecord, InvalidBumpLevel, MalformedRecord, RecordError
from prdoc.lib.logger import Logger
from prdoc.lib.models import Audience, Bump, CrateEntry, DocEntry, Entry, ParseResult, RecordFailure

DEFAULT_MARKER = "---"


def _is_blank(chunk: str) -> bool:
    """True when a chunk holds nothing but whitespace and comments."""

    return all(not line.strip() or line.lstrip().startswith("#") for line in chunk.split("\n"))


def split_container(text: str, marker: str = DEFAULT_MARKER) -> list[str]:
    """
    Split the raw text of a container into the raw text of each record.

    Args:
        text (str): Full file contents.
        marker (str): Token that, starting a line with only trailing whitespace
            after it, separates two records. Indented lines (e.g. inside a
            `|` block) never match.

    Returns:
        list[str]: Non-blank record texts in file order.
    """

    chunks: list[str] = []
    current: list[str] = []

    # Only "\n" ends a line; YAML keeps \x85, \u2028 and friends inside scalars.
    lines = text.split("\n")
    for i, line in enumerate(lines):
        if line.rstrip() == marker:
            chunks.append("".join(current))
            current = []
        else:
            current.append(line if i == len(lines) - 1 else line + "\n")
    chunks.append("".join(current))

    return [c for c in chunks if not _is_blank(c)]


def _require_list(data: dict, key: str, fail) -> list:
    value = data.get(key)
    if value is None:
        raise fail(key, "is missing")
    if not isinstance(value, list):
        raise fail(key, "must be a list")
    if not value:
        raise fail(key, "must contain at least one item")
    return value


def _require_text(value: Any, field: str, fail) -> str:
    if value is None:
        raise fail(field, "is missing")
    if not isinstance(value, str):
        raise fail(field, "must be a string")
    if not value.strip():
        raise fail(field, "must not be empty")
    return value


def _parse_audiences(value: Any, field: str, fail) -> tuple[Audience, ...]:
    raw = value if isinstance(value, list) else [value]
    if value is None or not raw:
        raise fail(field, "is missing")

    audiences = []
    for item in raw:
        try:
            audiences.append(Audience(item))
        except ValueError:
            raise fail(field, f"has unknown audience {item!r}") from None
    return tuple(audiences)


def parse_record(text: str, source: str | None = None, index: int | None = None) -> Entry:
    """
    Parse and validate a single record.

    Args:
        text (str): YAML text of exactly one record.
        source (str, optional): File the record came from, used in errors.
        index (int, optional): Position of the record in its file.

    Returns:
        Entry: The validated, immutable record.

    Raises:
        MalformedRecord: If a required field is missing or has the wrong shape.
        InvalidBumpLevel: If a crate's bump is not major, minor or patch.
    """

    def fail(field: str, reason: str) -> MalformedRecord:
        return MalformedRecord(field, reason, source, index)

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        mark = getattr(e, "problem_mark", None)
        where = f" at line {mark.line + 1}" if mark is not None else ""
        raise fail("<document>", f"is not valid YAML{where}") from e

    if not isinstance(data, dict):
        raise fail("<document>", "must be a mapping")

    title = _require_text(data.get("title"), "title", fail).strip()

    docs = []
    for i, item in enumerate(_require_list(data, "doc", fail)):
        if not isinstance(item, dict):
            raise fail(f"doc[{i}]", "must be a mapping")
        docs.append(
            DocEntry(
                audiences=_parse_audiences(item.get("audience"), f"doc[{i}].audience", fail),
                description=_require_text(item.get("description"), f"doc[{i}].description", fail),
            )
        )

    crates = []
    for i, item in enumerate(_require_list(data, "crates", fail)):
        if not isinstance(item, dict):
            raise fail(f"crates[{i}]", "must be a mapping")

        name = _require_text(item.get("name"), f"crates[{i}].name", fail).strip()

        if "bump" not in item:
            raise fail(f"crates[{i}].bump", "is missing")
        try:
            bump = Bump(item["bump"])
        except ValueError:
            raise InvalidBumpLevel(item["bump"], name, source, index) from None

        validate = item.get("validate", True)
        if not isinstance(validate, bool):
            raise fail(f"crates[{i}].validate", "must be true or false")

        crates.append(CrateEntry(name=name, bump=bump, validate=validate))

    seen: set[str] = set()
    warnings = []
    for crate in crates:
        if crate.name in seen:
            warnings.append(DuplicateCrateInRecord(crate.name, source, index))
        seen.add(crate.name)

    return Entry(
        title=title,
        docs=tuple(docs),
        crates=tuple(crates),
        source=source,
        index=index,
        warnings=tuple(warnings),
    )


def parse_container(text: str, source: str, marker: str = DEFAULT_MARKER) -> ParseResult:
    """
    Parse every record in a container, collecting failures instead of raising.

    Args:
        text (str): Full file contents.
        source (str): File name used in entries and errors.
        marker (str): Record separator line.

    Returns:
        ParseResult: Entries and failures, each in file order.
    """

    result = ParseResult()
    chunks = split_container(text, marker)
    Logger.debug(f"{source}: {len(chunks)} record(s)")

    for index, chunk in enumerate(chunks):
        try:
            result.entries.append(parse_record(chunk, source, index))
        except RecordError as e:
            result.failures.append(RecordFailure(source, index, e))

    return result


def parse_file(path: str | Path, marker: str = DEFAULT_MARKER) -> ParseResult:
    """
    Read a container from disk and parse it.

    An unreadable file becomes a single failure rather than an exception.
    """

    source = str(path)
    try:
        text = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        error = MalformedRecord("<file>", f"could not be read ({e.__class__.__name__})", source)
        return ParseResult(failures=[RecordFailure(source, None, error)])

    return parse_container(text, source, marker)


class _LiteralDumper(yaml.SafeDumper):
    """Safe dumper that writes multi-line strings as `|` blocks."""

    pass


# Characters the YAML reader treats as line breaks; only a double-quoted
# scalar can carry them through unchanged.
_ESCAPED_BREAKS = ("\r", "\x85", "\u2028", "\u2029", "\x0b", "\x0c")


def _represent_str(dumper: yaml.SafeDumper, data: str) -> yaml.ScalarNode:
    if any(ch in data for ch in _ESCAPED_BREAKS):
        return dumper.represent_scalar("tag:yaml.org,2002:str", data, style='"')
    if "\n" in data:
        return dumper.represent_scalar("tag:yaml.org,2002:str", data, style="|")
    return dumper.represent_scalar("tag:yaml.org,2002:str", data)


_LiteralDumper.add_representer(str, _represent_str)


def entry_to_dict(entry: Entry) -> dict[str, Any]:
    """Convert an entry to the plain mapping of the input format."""

    docs = []
    for doc in entry.docs:
        audiences = [a.value for a in doc.audiences]
        docs.append(
            {
                "audience": audiences[0] if len(audiences) == 1 else audiences,
                "description": doc.description,
            }
        )

    crates = []
    for crate in entry.crates:
        item: dict[str, Any] = {"name": crate.name, "bump": crate.bump.value}
        if not crate.validate:
            item["validate"] = False
        crates.append(item)

    return {"title": entry.title, "doc": docs, "crates": crates}


def serialize_entry(entry: Entry) -> str:
    """Render an entry back to prdoc YAML."""

    return yaml.dump(
        entry_to_dict(entry),
        Dumper=_LiteralDumper,
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
        width=float("inf"),
    )


def serialize_container(entries: list[Entry], marker: str = DEFAULT_MARKER) -> str:
    """Join serialized entries with marker lines."""

    return f"{marker}\n".join(serialize_entry(e) for e in entries)

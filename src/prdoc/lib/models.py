"""
Record types for prdoc.

Entries are frozen dataclasses holding tuples, so a parsed record cannot be
mutated after the parser hands it over.
"""

from dataclasses import dataclass, field
from enum import Enum

from prdoc.lib.errors import DuplicateCrateInRecord, RecordError


class Bump(str, Enum):
    """Semantic-versioning severity applied to a crate."""

    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]

    @classmethod
    def most_severe(cls, bumps) -> "Bump":
        """Return the most severe bump of a non-empty iterable."""

        return max(bumps, key=lambda b: b.severity)


_SEVERITY = {Bump.PATCH: 0, Bump.MINOR: 1, Bump.MAJOR: 2}


class Audience(str, Enum):
    """Intended reader category for a description."""

    RUNTIME_DEV = "Runtime Dev"
    RUNTIME_USER = "Runtime User"
    NODE_DEV = "Node Dev"
    NODE_OPERATOR = "Node Operator"
    TODO = "Todo"


@dataclass(frozen=True)
class DocEntry:
    audiences: tuple[Audience, ...]
    description: str


@dataclass(frozen=True)
class CrateEntry:
    name: str
    bump: Bump
    validate: bool = True


@dataclass(frozen=True)
class Entry:
    """
    One changelog record.

    `source` and `index` record where the entry was read from and `warnings`
    holds non-fatal authoring findings. None of the three take part in
    equality, so an entry compares equal to its re-parsed serialization.
    """

    title: str
    docs: tuple[DocEntry, ...]
    crates: tuple[CrateEntry, ...]
    source: str | None = field(default=None, compare=False)
    index: int | None = field(default=None, compare=False)
    warnings: tuple[DuplicateCrateInRecord, ...] = field(default=(), compare=False)

    @property
    def audiences(self) -> tuple[Audience, ...]:
        """Distinct audiences across all docs, in first-seen order."""

        return tuple(dict.fromkeys(a for doc in self.docs for a in doc.audiences))


@dataclass(frozen=True)
class RecordFailure:
    """A record that could not be parsed, kept for the run summary."""

    source: str
    index: int | None
    error: RecordError

    def describe(self) -> str:
        return str(self.error)


@dataclass
class ParseResult:
    """Outcome of parsing one container: good entries and the failures beside them."""

    entries: list[Entry] = field(default_factory=list)
    failures: list[RecordFailure] = field(default_factory=list)

    def extend(self, other: "ParseResult") -> None:
        self.entries.extend(other.entries)
        self.failures.extend(other.failures)

    @property
    def warnings(self) -> list[DuplicateCrateInRecord]:
        return [w for entry in self.entries for w in entry.warnings]

    @property
    def total(self) -> int:
        return len(self.entries) + len(self.failures)

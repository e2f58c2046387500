"""
Error kinds raised and collected while reading prdoc records.

`MalformedRecord` and `InvalidBumpLevel` are raised by the parser for a single
record and collected by `parse_container`; they never stop sibling records
from being read. `DuplicateCrateInRecord` is an authoring warning attached to
an otherwise valid entry. `NoRecordsFound` is the only error fatal to a run.
"""


class PrdocError(Exception):
    """Base class for all prdoc errors."""

    pass


class RecordError(PrdocError):
    """An error tied to one record inside one source file."""

    def __init__(self, message: str, source: str | None = None, index: int | None = None):
        self.message = message
        self.source = source
        self.index = index
        super().__init__(self.location() + message)

    def location(self) -> str:
        """Return a `file[#index]: ` prefix, or an empty string when unknown."""

        if self.source is None:
            return ""
        if self.index is None:
            return f"{self.source}: "
        return f"{self.source}#{self.index}: "


class MalformedRecord(RecordError):
    """Raised when a required field is missing or has the wrong shape."""

    def __init__(self, field: str, reason: str, source: str | None = None, index: int | None = None):
        self.field = field
        self.reason = reason
        super().__init__(f"field '{field}' {reason}", source, index)


class InvalidBumpLevel(RecordError):
    """Raised when a crate's bump is not one of major, minor or patch."""

    def __init__(self, value: object, crate: str, source: str | None = None, index: int | None = None):
        self.value = value
        self.crate = crate
        super().__init__(
            f"crate '{crate}' has invalid bump level {value!r} (expected major, minor or patch)",
            source,
            index,
        )


class DuplicateCrateInRecord(RecordError):
    """Authoring warning: a crate is listed more than once in one record."""

    def __init__(self, crate: str, source: str | None = None, index: int | None = None):
        self.crate = crate
        super().__init__(f"crate '{crate}' is listed more than once", source, index)


class NoRecordsFound(PrdocError):
    """Raised when a run discovers no records at all."""

    pass

class LeakfixError(Exception):
    """Base class for errors raised by leakfix."""


class ConflictError(LeakfixError):
    """Two edits of one fix touch overlapping source ranges."""

    def __init__(self, first: object, second: object) -> None:
        super().__init__(f"Overlapping edits: {first!r} and {second!r}")
        self.first = first
        self.second = second


class StructuralMismatch(LeakfixError):
    """The syntax around a flagged call does not have the shape a rewrite needs."""

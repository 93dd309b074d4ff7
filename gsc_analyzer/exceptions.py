"""Exception types for GSC Analyzer."""


class GSCAnalyzerError(Exception):
    """Base class for all analyzer errors."""


class InputDataError(GSCAnalyzerError):
    """A daily record has an unparseable date or a non-numeric metric."""


class InvalidDateError(InputDataError):
    """A value could not be parsed into a calendar date."""


class KeyResolutionError(GSCAnalyzerError):
    """A week identifier cannot be parsed into a date range."""


class AggregationInvariantViolation(GSCAnalyzerError):
    """A weekly group finalized with zero contributing records."""


class MergeConflict(GSCAnalyzerError):
    """More than one section matches the same normalized week key."""

    def __init__(self, key: str, positions: list[int]):
        self.key = key
        self.positions = positions
        super().__init__(
            f"Week key {key!r} matches {len(positions)} sections at positions {positions}"
        )


class SectionWriteError(GSCAnalyzerError):
    """Persisting one week section to the sheet failed; safe to retry."""

    def __init__(self, tab_name: str, week_label: str, reason: str):
        self.tab_name = tab_name
        self.week_label = week_label
        super().__init__(f"Failed to write {week_label} to {tab_name}: {reason}")


class SectionOrderViolation(GSCAnalyzerError):
    """Sections in the newest-first region are not ordered by start date."""

    def __init__(self, key: str, position: int):
        self.key = key
        self.position = position
        super().__init__(
            f"Week key {key!r} at position {position} is newer than the section before it"
        )

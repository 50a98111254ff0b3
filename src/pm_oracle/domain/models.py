"""Oracle value objects."""

from dataclasses import dataclass


@dataclass(frozen=True)
class OracleResult:
    """A conclusive answer from an external data source.

    ``outcome`` True means YES won. ``source`` is the citation shown to users:
    source name, measured value, threshold and URL.
    """

    outcome: bool
    value: float
    source: str

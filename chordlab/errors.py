"""
Error taxonomy and tagged results for the harmonization pipeline.

Low-level helpers raise the exceptions defined here. Public entry points
(``build_regions``, ``voice_lead_regions``) catch them at the seam and
hand back an :class:`Ok` or a :class:`Failure` so callers can branch on
the outcome without try/except.

Usage:
    from chordlab.errors import Failure

    result = build_regions("I IV V I", key, spec)
    if isinstance(result, Failure):
        print(result.error)
    else:
        regions = result.value
"""

from dataclasses import dataclass, field
from typing import Generic, List, Optional, TypeVar, Union

T = TypeVar("T")


class ChordLabError(Exception):
    """Base class for all pipeline errors."""
    pass


class ParseFailure(ChordLabError, ValueError):
    """A chord identifier does not resolve to a recipe."""

    def __init__(self, token: str, reason: str = "", token_index: Optional[int] = None):
        self.token = token
        self.reason = reason
        self.token_index = token_index
        where = f" (token #{token_index})" if token_index is not None else ""
        detail = f": {reason}" if reason else ""
        super().__init__(f"Cannot parse chord {token!r}{where}{detail}")


class MelodyParseFailure(ChordLabError, ValueError):
    """A melody token is not a valid note name."""

    def __init__(self, token: str, source: str = ""):
        self.token = token
        self.source = source
        suffix = f" in {source!r}" if source else ""
        super().__init__(f"Cannot parse melody token {token!r}{suffix}")


class VoicingInfeasible(ChordLabError):
    """A region cannot meet its Required-tone coverage with four voices."""

    def __init__(
        self,
        region_index: int,
        expected: List[int],
        realized: Optional[List[int]] = None,
        reason: str = "",
    ):
        self.region_index = region_index
        self.expected = list(expected)
        self.realized = list(realized or [])
        self.reason = reason
        super().__init__(
            f"Region {region_index}: no voicing covers required pitch classes "
            f"{self.expected} (realized={self.realized}){': ' + reason if reason else ''}"
        )


class InvalidVoicingRequest(ChordLabError):
    """Request parameters the engine cannot honour (e.g. voice count)."""
    pass


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful outcome carrying a value."""
    value: T

    @property
    def ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Failure:
    """Failed outcome carrying the taxonomy error that caused it."""
    error: ChordLabError
    context: dict = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return False

    def unwrap(self):
        raise self.error


Result = Union[Ok[T], Failure]

"""Error types raised by the fidelity core."""
from __future__ import annotations


class FidelityError(ValueError):
    """Base class for rejected inputs."""


class DecodeError(FidelityError):
    """Image bytes could not be decoded."""


class DimensionMismatchError(FidelityError):
    """Buffers that must share a size do not."""

    def __init__(self, expected: tuple[int, int], actual: tuple[int, int], what: str = "image") -> None:
        super().__init__(
            f"{what} is {actual[0]}x{actual[1]}, expected {expected[0]}x{expected[1]}"
        )
        self.expected = expected
        self.actual = actual


class InvalidBoundingBoxError(FidelityError):
    """A normalized box could not be brought into the unit square."""


__all__ = [
    "FidelityError",
    "DecodeError",
    "DimensionMismatchError",
    "InvalidBoundingBoxError",
]

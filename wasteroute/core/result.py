"""
Result - explicit success/failure value for soft-fail collaborator calls.

Bulk reads that must never abort a caller return a ``Result`` instead of
raising; the caller decides what a failure degrades to.
"""
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    """Either a value or the exception that prevented producing it"""

    value: T | None = None
    error: BaseException | None = None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: BaseException) -> "Result[T]":
        return cls(error=error)

    @property
    def is_success(self) -> bool:
        return self.error is None

    @property
    def is_failure(self) -> bool:
        return self.error is not None

    def get_or_none(self) -> T | None:
        return self.value if self.error is None else None

    def get_or_default(self, default: T) -> T:
        """Value on success, ``default`` on failure"""
        if self.error is not None:
            return default
        return self.value  # type: ignore[return-value]

    def get_or_raise(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]

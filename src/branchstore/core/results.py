"""Per-item success/failure accumulation for batch routines."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass
class ItemFailure:
    key: str
    error: BaseException

    def __str__(self) -> str:
        return f"{self.key}: {self.error}"


@dataclass
class BatchResult(Generic[T]):
    succeeded: list[T] = field(default_factory=list)
    failed: list[ItemFailure] = field(default_factory=list)

    def record_success(self, item: T) -> None:
        self.succeeded.append(item)

    def record_failure(self, key: str, error: BaseException) -> None:
        self.failed.append(ItemFailure(key, error))

    @property
    def ok(self) -> bool:
        return not self.failed

    def summary(self) -> str:
        return f"{len(self.succeeded)} succeeded, {len(self.failed)} failed"

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from app.errors import AnalysisError


T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Err:
    error: AnalysisError

    def unwrap(self):
        raise self.error


Result = Union[Ok[T], Err]

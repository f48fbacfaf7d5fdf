from __future__ import annotations

"""
movie_catalog/results.py

Resultado tipado de cada sub-operación concurrente.

- UpstreamError: causa de fallo contra TMDB (unreachable | malformed | not_found).
- TaskResult[T]: o un valor, o un error. Nunca ambos ni ninguno.

Los enrichers devuelven TaskResult en vez de tragarse excepciones: así el
coordinador (y los tests) pueden ver el motivo del fallo sin depender del log.
"""

from dataclasses import dataclass
from typing import Callable, Generic, Literal, TypeVar

T = TypeVar("T")
U = TypeVar("U")

ErrorKind = Literal["unreachable", "malformed", "not_found"]


@dataclass(frozen=True, slots=True)
class UpstreamError:
    kind: ErrorKind
    path: str
    detail: str = ""
    status: int | None = None

    def __str__(self) -> str:
        status = f" status={self.status}" if self.status is not None else ""
        detail = f" {self.detail}" if self.detail else ""
        return f"{self.kind}:{self.path}{status}{detail}"


@dataclass(frozen=True, slots=True)
class TaskResult(Generic[T]):
    """
    `ok=True`  -> `value` es el resultado (puede ser None legítimamente,
                  p.ej. una persona sin imdb_id).
    `ok=False` -> `error` describe la causa.
    """

    ok: bool
    value: T | None = None
    error: UpstreamError | None = None

    def __post_init__(self) -> None:
        if self.ok and self.error is not None:
            raise ValueError("TaskResult(ok=True) cannot carry an error")
        if not self.ok and self.error is None:
            raise ValueError("TaskResult(ok=False) requires an error")
        if not self.ok and self.value is not None:
            raise ValueError("TaskResult(ok=False) cannot carry a value")

    @classmethod
    def success(cls, value: T | None) -> TaskResult[T]:
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: UpstreamError) -> TaskResult[T]:
        return cls(ok=False, error=error)

    def value_or_none(self) -> T | None:
        return self.value if self.ok else None

    def map(self, fn: Callable[[T | None], U | None]) -> TaskResult[U]:
        if self.error is not None:
            return TaskResult.failure(self.error)
        return TaskResult.success(fn(self.value))

from __future__ import annotations

"""
movie_catalog/worker_pool.py

Pool de workers acotado y compartido por TODAS las agregaciones en curso.

- Se crea explícitamente al arrancar y se cierra al salir (shutdown / with).
- Capacidad fija e independiente del tamaño del cast: las tareas sobrantes encolan.
- Instrumentado: active / high_water / submitted / completed.

Regla de uso
------------
En el pool solo corren tareas "hoja" (una llamada a TMDB + parseo). Las esperas
(join / run) se hacen desde el hilo del caller o desde hilos driver, NUNCA desde
un worker: un worker esperando a tareas encoladas detrás de él puede agotar el
pool (con capacidad 1 es un deadlock seguro). join()/run() lo comprueban.
"""

import threading
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import ALL_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import TypeVar

from movie_catalog import logger as logger

T = TypeVar("T")
A = TypeVar("A")

_WORKER_FLAG = threading.local()


@dataclass(frozen=True, slots=True)
class PoolStats:
    capacity: int
    active: int
    high_water: int
    submitted: int
    completed: int


class WorkerPool:
    def __init__(self, capacity: int, *, name: str = "catalog") -> None:
        if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity < 1:
            raise ValueError(f"worker pool capacity must be a positive integer, got {capacity!r}")

        self._capacity = capacity
        self._name = name
        self._executor = ThreadPoolExecutor(max_workers=capacity, thread_name_prefix=f"{name}-worker")

        self._lock = threading.Lock()
        self._active = 0
        self._high_water = 0
        self._submitted = 0
        self._completed = 0
        self._closed = False

    @property
    def capacity(self) -> int:
        return self._capacity

    @staticmethod
    def in_worker() -> bool:
        return bool(getattr(_WORKER_FLAG, "active", False))

    # --------------------------------------------------------
    # Instrumentación
    # --------------------------------------------------------

    def _enter(self) -> None:
        with self._lock:
            self._active += 1
            if self._active > self._high_water:
                self._high_water = self._active

    def _exit(self) -> None:
        with self._lock:
            self._active -= 1
            self._completed += 1

    def stats(self) -> PoolStats:
        with self._lock:
            return PoolStats(
                capacity=self._capacity,
                active=self._active,
                high_water=self._high_water,
                submitted=self._submitted,
                completed=self._completed,
            )

    # --------------------------------------------------------
    # Scheduling
    # --------------------------------------------------------

    def _wrap(self, fn: Callable[..., T], args: tuple[object, ...]) -> Callable[[], T]:
        def _task() -> T:
            _WORKER_FLAG.active = True
            self._enter()
            try:
                return fn(*args)
            finally:
                self._exit()
                _WORKER_FLAG.active = False

        return _task

    def submit(self, fn: Callable[..., T], *args: object) -> Future[T]:
        with self._lock:
            if self._closed:
                raise RuntimeError(f"worker pool {self._name!r} is shut down")
            self._submitted += 1
        return self._executor.submit(self._wrap(fn, args))

    def fan_out(self, fn: Callable[[A], T], items: Iterable[A]) -> list[Future[T]]:
        """Un future por item, en el mismo orden que `items` (slot i <-> item i)."""
        return [self.submit(fn, item) for item in items]

    def _guard_blocking(self, op: str) -> None:
        if self.in_worker():
            raise RuntimeError(f"WorkerPool.{op}() called from a pool worker; joins must run outside the pool")

    def join(self, futures: Sequence[Future[T]]) -> list[T]:
        """
        Barrera fan-out/join: espera a que TODOS terminen (éxito o error) y
        devuelve los resultados en orden posicional. Sin cancelación: si alguna
        tarea lanzó, se relanza la primera excepción solo cuando ya han terminado todas.
        """
        self._guard_blocking("join")
        if not futures:
            return []
        wait(futures, return_when=ALL_COMPLETED)
        return [f.result() for f in futures]

    def run(self, fn: Callable[..., T], *args: object) -> T:
        """submit + espera (una sola tarea hoja)."""
        self._guard_blocking("run")
        return self.submit(fn, *args).result()

    # --------------------------------------------------------
    # Ciclo de vida
    # --------------------------------------------------------

    def shutdown(self, *, wait: bool = True) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._executor.shutdown(wait=wait)
        logger.debug_ctx("POOL", f"{self._name}: shutdown | {self.stats()}")

    def __enter__(self) -> WorkerPool:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # type: ignore[no-untyped-def]
        self.shutdown()

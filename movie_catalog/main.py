from __future__ import annotations

"""
movie_catalog/main.py

CLI del catálogo (console script `catalog`).

    catalog movie 603
    catalog popular --page 2
    catalog search "the matrix"
    catalog --workers 4 --max-people 20 movie 603

Reglas de consola (alineado con movie_catalog/logger.py)
--------------------------------------------------------
- stdout: SOLO el JSON resultado (se puede redirigir / pipear a jq).
- Estado global (inicio / fin): logger.info(...) -> stderr
- Errores de uso/config: logger.error(..., always=True)
- El WorkerPool se crea aquí y se cierra siempre al salir.

Códigos de salida: 0 ok, 1 config, 2 película no encontrada, 130 Ctrl+C.
"""

import argparse
import json
import sys
from collections.abc import Sequence

from movie_catalog import logger as logger
from movie_catalog.aggregator import AggregationCoordinator
from movie_catalog.config import (
    CATALOG_MAX_ENRICHED_PEOPLE,
    CATALOG_WORKER_POOL_SIZE,
    log_config_debug,
)
from movie_catalog.errors import ConfigError, MovieNotFoundError
from movie_catalog.tmdb_client import TmdbClient, log_tmdb_metrics_summary
from movie_catalog.worker_pool import WorkerPool

EXIT_OK = 0
EXIT_CONFIG = 1
EXIT_NOT_FOUND = 2
EXIT_INTERRUPTED = 130


def _positive_int(raw: str) -> int:
    try:
        value = int(raw)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected an integer, got {raw!r}") from None
    if value < 1:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {value}")
    return value


def _non_negative_int(raw: str) -> int:
    try:
        value = int(raw)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected an integer, got {raw!r}") from None
    if value < 0:
        raise argparse.ArgumentTypeError(f"expected an integer >= 0, got {value}")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="catalog",
        description="Movie catalog - agregación de fichas TMDB (créditos, similares, trailer)",
    )
    parser.add_argument(
        "--workers",
        type=_positive_int,
        default=CATALOG_WORKER_POOL_SIZE,
        help=f"Capacidad del pool de workers (default: {CATALOG_WORKER_POOL_SIZE})",
    )
    parser.add_argument(
        "--max-people",
        type=_non_negative_int,
        default=CATALOG_MAX_ENRICHED_PEOPLE,
        help="Máximo de miembros de cast/crew con lookup de IMDb (0 = sin límite)",
    )
    parser.add_argument("--compact", action="store_true", help="JSON en una línea")

    sub = parser.add_subparsers(dest="command", required=True)

    p_movie = sub.add_parser("movie", help="Ficha agregada de una película")
    p_movie.add_argument("movie_id", type=_positive_int)

    p_popular = sub.add_parser("popular", help="Página de populares, agregadas")
    p_popular.add_argument("--page", type=_positive_int, default=1)

    p_search = sub.add_parser("search", help="Búsqueda por título, agregada")
    p_search.add_argument("query")
    p_search.add_argument("--page", type=_positive_int, default=1)

    return parser


def _emit(data: object, *, compact: bool) -> None:
    text = json.dumps(data, ensure_ascii=False, indent=None if compact else 2)
    sys.stdout.write(text + "\n")
    sys.stdout.flush()


def run(args: argparse.Namespace, coordinator: AggregationCoordinator) -> int:
    if args.command == "movie":
        try:
            movie = coordinator.aggregate_or_raise(args.movie_id)
        except MovieNotFoundError as exc:
            logger.error(f"[CATALOG] {exc}", always=True)
            return EXIT_NOT_FOUND
        _emit(movie.to_dict(), compact=args.compact)
        return EXIT_OK

    if args.command == "popular":
        page = coordinator.popular(args.page)
    else:
        page = coordinator.search(args.query, args.page)
    _emit(page.to_dict(), compact=args.compact)
    return EXIT_OK


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    log_config_debug()

    try:
        client = TmdbClient(pool_size=args.workers)
    except ConfigError as exc:
        logger.error(f"[CATALOG] {exc}", always=True)
        return EXIT_CONFIG

    logger.info(f"[CATALOG] Inicio: {args.command} (workers={args.workers})")
    try:
        with client, WorkerPool(args.workers) as pool:
            coordinator = AggregationCoordinator(client, pool, max_people=args.max_people)
            code = run(args, coordinator)
            logger.debug_ctx("POOL", f"{pool.stats()}")
    except KeyboardInterrupt:
        logger.info("\n[CATALOG] Interrumpido por el usuario (Ctrl+C).", always=True)
        return EXIT_INTERRUPTED

    log_tmdb_metrics_summary()
    logger.info("[CATALOG] Fin")
    return code


def start() -> None:
    sys.exit(main())


if __name__ == "__main__":
    start()

from __future__ import annotations


class CatalogError(Exception):
    """Base de los errores propios del catálogo."""


class ConfigError(CatalogError):
    """Configuración inválida o incompleta (p.ej. falta TMDB_API_KEY)."""


class PayloadError(CatalogError):
    """El payload de TMDB no tiene la forma esperada (se mapea a 'malformed')."""


class MovieNotFoundError(CatalogError):
    """La ficha base (obligatoria) no se pudo obtener."""

    def __init__(self, movie_id: object, reason: str = "") -> None:
        self.movie_id = movie_id
        self.reason = reason
        msg = f"movie {movie_id!r} not found"
        if reason:
            msg = f"{msg} ({reason})"
        super().__init__(msg)

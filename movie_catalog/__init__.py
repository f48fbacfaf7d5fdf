"""movie_catalog: agregación concurrente de fichas de películas TMDB."""

__version__ = "0.1.0"

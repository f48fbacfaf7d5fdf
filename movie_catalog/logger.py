from __future__ import annotations

"""
movie_catalog/logger.py

Fachada de logging del catálogo (sobre `logging`).

API estable
-----------
- debug / info / warning / error
- progress (siempre visible, sin timestamps)
- debug_ctx(tag, msg): debug contextual alineado con SILENT/DEBUG
- truncate_line(text): recorta payloads enormes antes de loguearlos

Política
--------
- SILENT_MODE=True: suprime debug/info/warning (salvo always=True). `error()` siempre emite.
- DEBUG_MODE=True: habilita debug_ctx; en SILENT+DEBUG se emite por `progress`.
- El logging nunca debe romper una agregación.

Los flags se leen de `movie_catalog.config_base` solo si ya está importado
(vía sys.modules), así evitamos imports circulares: config_base importa este módulo.
"""

import logging
import os
import sys
import threading
from types import ModuleType, TracebackType
from typing import Final, Mapping, TypedDict

from typing_extensions import TypeAlias, Unpack

_ExcInfoTuple: TypeAlias = tuple[type[BaseException], BaseException, TracebackType | None]
ExcInfo: TypeAlias = bool | _ExcInfoTuple | BaseException | None


class LogKwargs(TypedDict, total=False):
    """Subconjunto de kwargs de logging.Logger.* que reenviamos."""

    exc_info: ExcInfo
    stack_info: bool
    stacklevel: int
    extra: Mapping[str, object] | None


LOGGER_NAME: Final[str] = "movie_catalog"

_CONFIG_MODULE: Final[str] = "movie_catalog.config_base"
_FILE_HANDLER_TAG: Final[str] = "_movie_catalog_file_handler"
_LOG_FORMAT: Final[str] = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_LOGGER: logging.Logger | None = None
_CONFIGURED: bool = False
_PROGRESS_LOCK = threading.Lock()


# ============================================================================
# FLAGS (sin importar config directamente)
# ============================================================================


def _safe_get_cfg() -> ModuleType | None:
    mod = sys.modules.get(_CONFIG_MODULE)
    return mod if isinstance(mod, ModuleType) else None


def _cfg_bool(name: str, default: bool = False) -> bool:
    cfg = _safe_get_cfg()
    if cfg is None:
        return default
    try:
        return bool(getattr(cfg, name, default))
    except Exception:
        return default


def _cfg_int(name: str, default: int) -> int:
    cfg = _safe_get_cfg()
    if cfg is None:
        return default
    try:
        return int(getattr(cfg, name, default))
    except Exception:
        return default


def _cfg_str(name: str, default: str | None = None) -> str | None:
    cfg = _safe_get_cfg()
    if cfg is None:
        return default
    v = getattr(cfg, name, default)
    if v is None:
        return None
    s = str(v).strip()
    return s or default


def is_silent_mode() -> bool:
    return _cfg_bool("SILENT_MODE", False)


def is_debug_mode() -> bool:
    return _cfg_bool("DEBUG_MODE", False)


# ============================================================================
# LEVEL + LOGGERS EXTERNOS
# ============================================================================

_LEVELS: Final[dict[str, int]] = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def _resolve_level_from_config() -> int:
    """
    Prioridad:
      1) LOG_LEVEL explícito
      2) DEBUG_MODE
      3) INFO
    """
    lvl = _cfg_str("LOG_LEVEL", None)
    if lvl:
        mapped = _LEVELS.get(lvl.upper())
        if mapped is not None:
            return mapped
    if is_debug_mode():
        return logging.DEBUG
    return logging.INFO


def _configure_external_loggers() -> None:
    """urllib3/requests a WARNING salvo HTTP_DEBUG=True."""
    if _cfg_bool("HTTP_DEBUG", False):
        return
    for name in ("urllib3", "urllib3.connectionpool", "requests"):
        logging.getLogger(name).setLevel(logging.WARNING)


def _file_logging_path() -> str | None:
    """ENV LOGGER_FILE_PATH gana sobre config_base.LOGGER_FILE_PATH."""
    env_p = (os.getenv("LOGGER_FILE_PATH") or "").strip()
    if env_p:
        return env_p
    return _cfg_str("LOGGER_FILE_PATH", None)


def _ensure_file_handler(root: logging.Logger, *, level: int) -> None:
    """Best-effort: si no se puede abrir el fichero seguimos solo con consola."""
    if not _cfg_bool("LOGGER_FILE_ENABLED", False):
        return
    path = _file_logging_path()
    if not path:
        return

    for h in root.handlers:
        if getattr(h, _FILE_HANDLER_TAG, False):
            h.setLevel(level)
            return

    try:
        dir_name = os.path.dirname(path)
        if dir_name:
            os.makedirs(dir_name, exist_ok=True)
        fh = logging.FileHandler(path, mode="a", encoding="utf-8", delay=True)
    except OSError:
        return

    fh.setLevel(level)
    fh.setFormatter(logging.Formatter(_LOG_FORMAT))
    setattr(fh, _FILE_HANDLER_TAG, True)
    root.addHandler(fh)


def _ensure_configured() -> logging.Logger:
    """Inicialización idempotente; re-aplica el nivel si la config cambió."""
    global _LOGGER, _CONFIGURED

    level = _resolve_level_from_config()
    root = logging.getLogger()

    if not _CONFIGURED:
        if not root.handlers:
            logging.basicConfig(level=level, format=_LOG_FORMAT)
        _LOGGER = logging.getLogger(LOGGER_NAME)
        _CONFIGURED = True

    root.setLevel(level)
    _configure_external_loggers()
    _ensure_file_handler(root, level=level)

    return _LOGGER if _LOGGER is not None else logging.getLogger(LOGGER_NAME)


def get_logger() -> logging.Logger:
    return _ensure_configured()


def _should_log(*, always: bool = False) -> bool:
    if always:
        return True
    return not is_silent_mode()


# ============================================================================
# PROGRESO (NO logging)
# ============================================================================


def progress(message: str) -> None:
    """Línea siempre visible (ignora SILENT_MODE); se duplica a fichero si procede."""
    try:
        sys.stdout.write(f"{message}\n")
        sys.stdout.flush()
    except Exception:
        pass

    if not _cfg_bool("LOGGER_FILE_ENABLED", False):
        return
    path = _file_logging_path()
    if not path:
        return
    try:
        with _PROGRESS_LOCK:
            with open(path, "a", encoding="utf-8") as f:
                f.write(f"{message}\n")
    except OSError:
        return


# ============================================================================
# API PÚBLICA
# ============================================================================


def debug(msg: str, *args: object, always: bool = False, **kwargs: Unpack[LogKwargs]) -> None:
    if not _should_log(always=always):
        return
    _ensure_configured().debug(msg, *args, **kwargs)


def info(msg: str, *args: object, always: bool = False, **kwargs: Unpack[LogKwargs]) -> None:
    if not _should_log(always=always):
        return
    _ensure_configured().info(msg, *args, **kwargs)


def warning(msg: str, *args: object, always: bool = False, **kwargs: Unpack[LogKwargs]) -> None:
    if not _should_log(always=always):
        return
    _ensure_configured().warning(msg, *args, **kwargs)


def error(msg: str, *args: object, always: bool = False, **kwargs: Unpack[LogKwargs]) -> None:
    """ERROR siempre se emite (ignora SILENT_MODE)."""
    _ensure_configured().error(msg, *args, **kwargs)


# ============================================================================
# DEBUG CONTEXTUAL + TRUNCADO
# ============================================================================

_DEFAULT_LOG_LINE_MAX_CHARS: Final[int] = 500


def truncate_line(text: str, max_chars: int | None = None) -> str:
    """Recorta una línea (p.ej. un body JSON de error) a LOGGER_LOG_LINE_MAX_CHARS."""
    limit = (
        int(max_chars)
        if isinstance(max_chars, int) and max_chars > 0
        else _cfg_int("LOGGER_LOG_LINE_MAX_CHARS", _DEFAULT_LOG_LINE_MAX_CHARS)
    )
    if len(text) <= limit:
        return text
    return text[: max(0, limit - 12)] + " …(truncated)"


def debug_ctx(tag: str, msg: object) -> None:
    """
    - DEBUG_MODE=False -> no-op
    - DEBUG_MODE=True:
        * SILENT_MODE=True  -> progress("[TAG][DEBUG] ...")
        * SILENT_MODE=False -> info("[TAG][DEBUG] ...")
    """
    if not is_debug_mode():
        return

    t = (tag or "DEBUG").strip().upper()
    text = f"[{t}][DEBUG] {msg}"
    if is_silent_mode():
        progress(text)
    else:
        info(text)

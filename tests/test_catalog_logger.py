import movie_catalog.logger as logger


def test_truncate_line_marks_truncated():
    out = logger.truncate_line("x" * 50, max_chars=20)
    assert out.endswith("(truncated)")
    assert len(out) <= 21

    assert logger.truncate_line("short", max_chars=20) == "short"


def test_debug_ctx_is_noop_without_debug(monkeypatch):
    seen = []
    monkeypatch.setattr(logger, "is_debug_mode", lambda: False)
    monkeypatch.setattr(logger, "info", lambda msg, *a, **k: seen.append(msg))

    logger.debug_ctx("pool", "hello")
    assert seen == []


def test_debug_ctx_routes_by_silent_mode(monkeypatch):
    infos = []
    progress = []
    monkeypatch.setattr(logger, "is_debug_mode", lambda: True)
    monkeypatch.setattr(logger, "info", lambda msg, *a, **k: infos.append(msg))
    monkeypatch.setattr(logger, "progress", lambda msg: progress.append(msg))

    monkeypatch.setattr(logger, "is_silent_mode", lambda: False)
    logger.debug_ctx("pool", "a")
    monkeypatch.setattr(logger, "is_silent_mode", lambda: True)
    logger.debug_ctx("", "b")

    assert infos == ["[POOL][DEBUG] a"]
    assert progress == ["[DEBUG][DEBUG] b"]


def test_progress_writes_stdout(capsys):
    logger.progress("[CATALOG] hola")
    out = capsys.readouterr().out
    assert "[CATALOG] hola\n" in out


def test_silent_mode_suppresses_warning_but_not_error(monkeypatch):
    calls = []

    class _Rec:
        def warning(self, msg, *a, **k):
            calls.append(("warning", msg))

        def error(self, msg, *a, **k):
            calls.append(("error", msg))

    monkeypatch.setattr(logger, "_ensure_configured", lambda: _Rec())
    monkeypatch.setattr(logger, "is_silent_mode", lambda: True)

    logger.warning("hidden")
    logger.warning("shown", always=True)
    logger.error("boom")

    assert calls == [("warning", "shown"), ("error", "boom")]

"""Reflexum - study journal analytics, Markdown reports and Telegram digests"""

from __future__ import annotations

__version__ = "1.0.0"


# Lazy imports so that `import reflexum` stays cheap for the CLI
def __getattr__(name: str):
    if name == "analyze":
        from reflexum.analysis.aggregation import analyze

        return analyze
    if name == "render_markdown":
        from reflexum.rendering.markdown import render_markdown

        return render_markdown
    if name == "render_digest":
        from reflexum.rendering.digest import render_digest

        return render_digest
    if name in ("should_send_report", "report_window"):
        from reflexum.scheduling import auto_report

        return getattr(auto_report, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)


__all__ = [
    "analyze",
    "render_markdown",
    "render_digest",
    "should_send_report",
    "report_window",
]

from __future__ import annotations

import html
import re

_BOLD = re.compile(r"\*\*(.+?)\*\*", re.DOTALL)


def render_markup(text: str) -> str:
    """Escape ``text`` for HTML and turn ``**span**`` into ``<strong>span</strong>``."""

    escaped = html.escape(text, quote=True)
    emphasized = _BOLD.sub(r"<strong>\1</strong>", escaped)
    return emphasized.replace("\n", "<br>")

from __future__ import annotations

import os
import sys
import textwrap
from typing import Any, Dict, List, Tuple

from .config import Config
from .state import ActivityStats


def supports_color() -> bool:
    return sys.stdout.isatty() and not bool(os.getenv("NO_COLOR"))


def _ui_palette() -> Dict[str, str]:
    if not supports_color():
        return {
            "reset": "",
            "bold": "",
            "blue": "",
            "cyan": "",
            "green": "",
            "red": "",
            "magenta": "",
        }
    return {
        "reset": "\033[0m",
        "bold": "\033[1m",
        "blue": "\033[1;34m",
        "cyan": "\033[1;36m",
        "green": "\033[1;32m",
        "red": "\033[1;31m",
        "magenta": "\033[1;35m",
    }


def _ui_paint(text: str, tone: str = "", bold: bool = False) -> str:
    palette = _ui_palette()
    reset = palette["reset"]
    if not reset:
        return text
    chunks: List[str] = []
    if bold:
        chunks.append(palette["bold"])
    if tone:
        chunks.append(palette.get(tone, ""))
    chunks.append(text)
    chunks.append(reset)
    return "".join(chunks)


def _ui_wrap_lines(value: Any, width: int) -> List[str]:
    text = str(value if value is not None else "").strip()
    if width < 8:
        width = 8
    if not text:
        return [""]
    out: List[str] = []
    for raw_line in text.splitlines():
        line = raw_line.rstrip()
        if not line:
            out.append("")
            continue
        wrapped = textwrap.wrap(line, width=width, break_long_words=True, break_on_hyphens=False)
        out.extend(wrapped or [""])
    return out or [""]


def _ui_print_panel(
    title: str,
    rows: List[Tuple[str, Any]],
    tone: str = "cyan",
    width: int = 62,
) -> None:
    inner = max(30, width - 4)
    border = "+" + ("-" * (inner + 2)) + "+"
    print("")
    print(_ui_paint(border, tone=tone, bold=True))
    title_text = title.strip() or "INFO"
    print(_ui_paint(f"| {title_text:<{inner}} |", tone=tone, bold=True))
    print(_ui_paint(border, tone=tone))
    for key, value in rows:
        label = key.strip()
        value_lines = _ui_wrap_lines(value, width=(inner - (len(label) + 2) if label else inner))
        for idx, line in enumerate(value_lines):
            if label:
                prefix = f"{label}: " if idx == 0 else (" " * (len(label) + 2))
            else:
                prefix = ""
            content = f"{prefix}{line}"
            print(f"| {content:<{inner}} |")
    print(_ui_paint(border, tone=tone))
    print("")


def print_runtime_banner(cfg: Config) -> None:
    _ui_print_panel(
        title="BOT COP",
        rows=[
            ("base_url", cfg.base_url),
            ("bot_user", cfg.username),
            ("report_user", cfg.report_username),
            (
                "schedule",
                f"message/{cfg.interval_minutes:g}m comment/{cfg.interval_minutes:g}m "
                f"(offset {cfg.comment_offset_seconds:g}s) health/{cfg.health_check_seconds:g}s",
            ),
        ],
        tone="magenta",
    )


def print_action_banner(title: str) -> None:
    _ui_print_panel(title=title, rows=[], tone="blue", width=62)


def print_health_banner(stats: ActivityStats, healthy: bool, consecutive_errors: int) -> None:
    _ui_print_panel(
        title="BOT HEALTH STATUS",
        rows=[
            ("status", "Healthy" if healthy else "Unhealthy"),
            ("total_actions", stats.total),
            ("successes", stats.successes),
            ("errors", stats.errors),
            ("success_rate", stats.success_rate),
            ("consecutive_errors", consecutive_errors),
        ],
        tone="green" if healthy else "red",
    )


def print_final_stats(stats: ActivityStats) -> None:
    _ui_print_panel(
        title="FINAL STATISTICS",
        rows=[
            ("total_actions", stats.total),
            ("successes", stats.successes),
            ("errors", stats.errors),
            ("success_rate", stats.success_rate),
        ],
        tone="cyan",
    )

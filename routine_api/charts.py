from __future__ import annotations

from dataclasses import dataclass
from io import BytesIO
from typing import Dict

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402

from .dates import day_short, day_string, month_short, weeks_in_year  # noqa: E402


@dataclass(frozen=True)
class StatsCard:
    title: str
    period_label: str
    streak: int
    today_percentage: int
    completed: int
    total: int
    level: int
    xp: int
    achievements_unlocked: int
    achievements_total: int


def render_stats_card_png(card: StatsCard) -> bytes:
    fig = plt.figure(figsize=(9, 5), dpi=160)
    ax = fig.add_subplot(111)
    ax.axis("off")

    title = f"{card.title} — {card.period_label}"
    lines = [
        f"Today: {card.completed}/{card.total} completed ({card.today_percentage}%)",
        f"Streak: {card.streak}",
        f"Level: {card.level}",
        f"XP: {card.xp}",
        f"Achievements: {card.achievements_unlocked}/{card.achievements_total}",
    ]

    ax.text(0.03, 0.92, title, fontsize=18, fontweight="bold", va="top")
    y = 0.80
    for ln in lines:
        ax.text(0.05, y, ln, fontsize=14, va="top")
        y -= 0.10

    buf = BytesIO()
    fig.savefig(buf, format="png", bbox_inches="tight", pad_inches=0.3)
    plt.close(fig)
    return buf.getvalue()


def render_year_heatmap_png(percentages: Dict[str, float], year: int, title: str = "Completion") -> bytes:
    """GitHub-style grid: one column per week (Sunday first), one row per weekday.

    Days outside `year` stay blank; days missing from `percentages` read as 0%.
    """
    weeks = weeks_in_year(year)
    grid = [[float("nan")] * len(weeks) for _ in range(7)]
    month_ticks = []
    for col, week in enumerate(weeks):
        for row, d in enumerate(week):
            if d.year != year:
                continue
            grid[row][col] = percentages.get(day_string(d), 0.0)
            if d.day == 1:
                month_ticks.append((col, month_short(d.month)))

    fig = plt.figure(figsize=(12, 2.6), dpi=160)
    ax = fig.add_subplot(111)
    cmap = matplotlib.colormaps["Greens"].copy()
    cmap.set_bad(color="white")
    ax.imshow(grid, cmap=cmap, vmin=0, vmax=100, aspect="equal")
    ax.set_title(f"{title} {year}")
    ax.set_yticks(range(7))
    ax.set_yticklabels([day_short(7)] + [day_short(i) for i in range(1, 7)], fontsize=7)
    ax.set_xticks([c for c, _ in month_ticks])
    ax.set_xticklabels([m for _, m in month_ticks], fontsize=7)
    for spine in ax.spines.values():
        spine.set_visible(False)

    buf = BytesIO()
    fig.savefig(buf, format="png", bbox_inches="tight", pad_inches=0.2)
    plt.close(fig)
    return buf.getvalue()

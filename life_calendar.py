from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

import numpy as np
import pandas as pd
import plotly.graph_objects as go

from engine import time_left_breakdown

COLS = 17          # 17 x 5 = 85 squares at the baseline expectancy
GROUP = 5          # visual gap after every 5th column

STATE_COLORS = {
    "light": {"past": "rgba(0,0,0,0.70)", "now": "rgba(217,70,239,1.0)", "left": "rgba(52,211,153,0.70)"},
    "dark":  {"past": "rgba(255,255,255,0.80)", "now": "rgba(217,70,239,1.0)", "left": "rgba(34,211,238,0.70)"},
}

LABELS = {
    "th": {
        "title": "ปฏิทินชีวิต (ประมาณ {total} ปี)",
        "past": "ผ่านไปแล้ว",
        "now": "ปีนี้",
        "left": "ที่เหลือ",
        "past_count": "{n} ปี",
        "left_count": "~{y} ปี (~{m} เดือน)",
        "caption": "แรงบันดาลใจจากแนวคิด Life Calendar เพื่อเห็นภาพเวลาที่เหลือ",
    },
    "en": {
        "title": "Life calendar (~{total} years)",
        "past": "Past",
        "now": "This year",
        "left": "Remaining",
        "past_count": "{n} yrs",
        "left_count": "~{y} yrs (~{m} mo)",
        "caption": "Inspired by the Life Calendar concept to visualize time left.",
    },
}

# Lower-case hover words
HOVER = {
    "th": {"past": "ผ่านไปแล้ว", "now": "ปีนี้", "left": "ที่เหลือ"},
    "en": {"past": "past", "now": "this year", "left": "remaining"},
}


@dataclass
class CalendarSummary:
    cells: int
    total_years_label: int
    elapsed_years: int
    remaining_years: int
    remaining_months: int

    def legend(self, lang: str = "th") -> dict:
        lab = LABELS.get(lang, LABELS["en"])
        return {
            "title": lab["title"].format(total=self.total_years_label),
            "past": lab["past"],
            "now": lab["now"],
            "left": lab["left"],
            "past_count": lab["past_count"].format(n=self.elapsed_years),
            "left_count": lab["left_count"].format(y=self.remaining_years, m=self.remaining_months),
        }


def _finite(x: float, default: float = 0.0) -> float:
    x = float(x)
    return x if math.isfinite(x) else default


def cell_count(expectancy_years: float) -> int:
    return max(0, int(math.floor(_finite(expectancy_years))))


def calendar_frame(age: float, expectancy_years: float,
                   years_left: Optional[float] = None, lang: str = "th") -> pd.DataFrame:
    """
    One row per calendar year: index i (0-based), label i+1, grid row/col,
    state in {"past", "now", "left"} and the hover text.
    """
    age = _finite(age)
    n = cell_count(expectancy_years)
    left_y = _finite(years_left) if years_left is not None else _finite(expectancy_years) - age
    tl = time_left_breakdown(left_y)
    words = HOVER.get(lang, HOVER["en"])

    idx = np.arange(n)
    now_idx = int(math.floor(age))
    state = np.where(idx == now_idx, "now", np.where(idx < age, "past", "left"))

    hover = []
    for i, s in zip(idx, state):
        if s == "left":
            hover.append(f"{i + 1} - {words['left']} ~{tl.years}y/{tl.months}m/{tl.weeks}w")
        else:
            hover.append(f"{i + 1} - {words[s]}")

    return pd.DataFrame({
        "index": idx,
        "label": idx + 1,
        "row": idx // COLS,
        "col": idx % COLS,
        "state": state,
        "hover": hover,
    })


def calendar_summary(age: float, expectancy_years: float,
                     years_left: Optional[float] = None) -> CalendarSummary:
    n = cell_count(expectancy_years)
    age = _finite(age)
    left_y = _finite(years_left) if years_left is not None else max(0.0, _finite(expectancy_years) - age)
    tl = time_left_breakdown(left_y)
    return CalendarSummary(
        cells=n,
        total_years_label=int(math.floor(_finite(expectancy_years) + 0.5)),
        elapsed_years=max(0, min(int(math.floor(age)), n)),
        remaining_years=tl.years,
        remaining_months=tl.months,
    )


def calendar_figure(df: pd.DataFrame, lang: str = "th", theme: str = "light") -> go.Figure:
    """Square markers on a 17-wide grid, newest rows at the bottom."""
    colors = STATE_COLORS.get(theme, STATE_COLORS["light"])
    names = LABELS.get(lang, LABELS["en"])
    # gap after each GROUP of columns
    x = df["col"] + (df["col"] // GROUP) * 0.4

    fig = go.Figure()
    for state in ("past", "now", "left"):
        sub = df[df["state"] == state]
        fig.add_trace(go.Scatter(
            x=x[sub.index], y=sub["row"],
            mode="markers+text",
            text=sub["label"].astype(str),
            textfont=dict(size=9),
            hovertext=sub["hover"], hoverinfo="text",
            marker=dict(
                symbol="square", size=26, color=colors[state],
                line=dict(width=2 if state == "now" else 0, color=colors["now"]),
            ),
            name=names[state],
        ))

    n_rows = int(df["row"].max()) + 1 if len(df) else 1
    fig.update_layout(
        template="plotly_dark" if theme == "dark" else "plotly_white",
        height=60 + 34 * n_rows,
        margin=dict(l=10, r=10, t=10, b=10),
        legend=dict(orientation="h", y=1.02, x=1, xanchor="right", yanchor="bottom"),
        showlegend=True,
    )
    fig.update_xaxes(visible=False)
    fig.update_yaxes(visible=False, autorange="reversed")
    return fig


def caption(lang: str = "th") -> str:
    return LABELS.get(lang, LABELS["en"])["caption"]

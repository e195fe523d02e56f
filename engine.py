from __future__ import annotations

import math
from dataclasses import dataclass, field, replace as _dc_replace
from typing import Any, Dict, List, Mapping, Optional

import numpy as np
import structlog

logger = structlog.get_logger(__name__)

# External (storage / query string) key -> dataclass attribute
FIELD_KEYS: Dict[str, str] = {
    "age": "age",
    "sleepHoursPerNight": "sleep_hours_per_night",
    "exerciseHoursPerWeek": "exercise_hours_per_week",
    "socialContactsPerWeek": "social_contacts_per_week",
    "mindfulnessMinutesPerDay": "mindfulness_minutes_per_day",
    "purposeScore": "purpose_score",
    "incomeSatisfaction": "income_satisfaction",
    "gratitudeDaysPerWeek": "gratitude_days_per_week",
    "screenTimeHoursPerDay": "screen_time_hours_per_day",
    "natureHoursPerWeek": "nature_hours_per_week",
    "workHoursPerWeek": "work_hours_per_week",
    "stressLevel": "stress_level",
    "pastSelfReport": "past_self_report",
    "planAdherencePercent": "plan_adherence_percent",
}

ALL_KEYS: List[str] = list(FIELD_KEYS)
MINIMAL_KEYS: List[str] = ["age", "sleepHoursPerNight", "exerciseHoursPerWeek", "stressLevel"]

# Heuristic parameters
BASE_EXPECTANCY = 85.0
SLEEP_CURVE = (4.0, 12.0, 7.0, 9.0)     # low, high, ideal_low, ideal_high
EXERCISE_CURVE = (2.5, 5.0)             # knee, max_useful (hours/week)
KNEE_SCORE = 0.7
COMPOSITE_WEIGHTS = {"sleep": 0.40, "exercise": 0.35, "stress": 0.25}
DRIVER_DELTA_SCALE = 4.0                # years per unit of (score - 0.5)
COMPOSITE_DELTA_SCALE = 2.0


@dataclass
class HappinessInputs:
    age: float = 30.0
    sleep_hours_per_night: float = 7.0
    exercise_hours_per_week: float = 2.5
    social_contacts_per_week: float = 3.0
    mindfulness_minutes_per_day: float = 10.0
    purpose_score: float = 6.0
    income_satisfaction: float = 6.0
    gratitude_days_per_week: float = 2.0
    screen_time_hours_per_day: float = 3.0
    nature_hours_per_week: float = 1.0
    work_hours_per_week: float = 40.0
    stress_level: float = 5.0
    past_self_report: float = 6.0
    plan_adherence_percent: float = 60.0

    @classmethod
    def from_mapping(cls, partial: Optional[Mapping[str, Any]] = None) -> "HappinessInputs":
        """Overlay a partial mapping of external keys on the defaults. Unknown keys are ignored."""
        inp = cls()
        if not partial:
            return inp
        changes = {FIELD_KEYS[k]: v for k, v in partial.items() if k in FIELD_KEYS}
        return inp.replace(**changes)

    def to_mapping(self) -> Dict[str, float]:
        return {key: float(getattr(self, attr)) for key, attr in FIELD_KEYS.items()}

    def replace(self, **changes: Any) -> "HappinessInputs":
        # Non-finite entries are stored as 0 (the form never holds NaN)
        clean = {}
        for attr, v in changes.items():
            try:
                n = float(v)
            except (TypeError, ValueError):
                n = 0.0
            clean[attr] = n if math.isfinite(n) else 0.0
        return _dc_replace(self, **clean)

    def minimal(self) -> Dict[str, float]:
        return {k: float(getattr(self, FIELD_KEYS[k])) for k in MINIMAL_KEYS}


@dataclass
class ScoreBreakdown:
    sleep01: float
    exercise01: float
    stress01: float
    composite01: float
    sleep_delta: float
    exercise_delta: float
    stress_delta: float
    composite_delta: float
    base: float = BASE_EXPECTANCY

    @property
    def total_delta(self) -> float:
        return self.sleep_delta + self.exercise_delta + self.stress_delta + self.composite_delta

    @property
    def expectancy(self) -> float:
        return max(0.0, self.base + self.total_delta)


@dataclass
class Recommendations:
    th: List[str] = field(default_factory=list)
    en: List[str] = field(default_factory=list)

    def for_lang(self, lang: str, limit: Optional[int] = None) -> List[str]:
        items = self.th if lang == "th" else self.en
        return items[:limit] if limit is not None else list(items)


@dataclass
class TimeLeft:
    years: int
    months: int
    weeks: int
    days: int
    hours: int


# ----------------------- curves -----------------------

def clamp01(x: float) -> float:
    x = float(x)
    if not math.isfinite(x):
        return 0.0
    return float(np.clip(x, 0.0, 1.0))


def triangular_optimal(value: float, low: float, high: float,
                       ideal_low: float, ideal_high: float) -> float:
    """
    0 outside (low, high), 1 inside [ideal_low, ideal_high], linear ramps in between.
    Non-finite input scores 0.
    """
    if not (low < ideal_low <= ideal_high < high):
        raise ValueError(f"Bad triangular bounds: {low}, {ideal_low}, {ideal_high}, {high}")
    v = float(value)
    if not math.isfinite(v):
        return 0.0
    if v <= low or v >= high:
        return 0.0
    if ideal_low <= v <= ideal_high:
        return 1.0
    if v < ideal_low:
        return clamp01((v - low) / (ideal_low - low))
    return clamp01((high - v) / (high - ideal_high))


def saturating_above(value: float, knee: float, max_useful: float) -> float:
    """
    0 at or below zero, linear up to KNEE_SCORE at the knee, then a slower
    linear climb to 1 at max_useful. Continuous and non-decreasing.
    """
    if not (0.0 < knee < max_useful):
        raise ValueError(f"Need 0 < knee < max_useful, got knee={knee}, max_useful={max_useful}")
    v = float(value)
    if not math.isfinite(v) or v <= 0.0:
        return 0.0
    if v >= max_useful:
        return 1.0
    if v <= knee:
        return clamp01(KNEE_SCORE * v / knee)
    return clamp01(KNEE_SCORE + (1.0 - KNEE_SCORE) * (v - knee) / (max_useful - knee))


def sleep_score(hours: float) -> float:
    return clamp01(triangular_optimal(hours, *SLEEP_CURVE))


def exercise_score(hours: float) -> float:
    return clamp01(saturating_above(hours, *EXERCISE_CURVE))


def stress_score(level: float) -> float:
    # Lower stress is better; 10 -> 0, 0 -> 1
    return clamp01((10.0 - float(level)) / 10.0)


# ----------------------- expectancy -----------------------

def _as_inputs(inputs: Any) -> HappinessInputs:
    if isinstance(inputs, HappinessInputs):
        return inputs
    return HappinessInputs.from_mapping(inputs)


def score_breakdown(inputs: Any) -> ScoreBreakdown:
    """Normalized scores, composite and per-driver deltas behind the expectancy estimate."""
    inp = _as_inputs(inputs)
    s = sleep_score(inp.sleep_hours_per_night)
    e = exercise_score(inp.exercise_hours_per_week)
    r = stress_score(inp.stress_level)
    w = COMPOSITE_WEIGHTS
    comp = clamp01(w["sleep"] * s + w["exercise"] * e + w["stress"] * r)
    return ScoreBreakdown(
        sleep01=s,
        exercise01=e,
        stress01=r,
        composite01=comp,
        sleep_delta=(s - 0.5) * DRIVER_DELTA_SCALE,
        exercise_delta=(e - 0.5) * DRIVER_DELTA_SCALE,
        stress_delta=(r - 0.5) * DRIVER_DELTA_SCALE,
        composite_delta=(comp - 0.5) * COMPOSITE_DELTA_SCALE,
    )


def estimate_adjusted_expectancy(inputs: Any) -> float:
    """
    Adjusted life expectancy (years) from the four minimal drivers.

    Accepts a HappinessInputs or a mapping of external keys; missing keys take
    their defaults. Never negative.
    """
    return score_breakdown(inputs).expectancy


def years_left(inputs: Any) -> float:
    """Expectancy minus current age. Can be negative; display code floors it."""
    inp = _as_inputs(inputs)
    return estimate_adjusted_expectancy(inp) - float(inp.age)


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def time_left_breakdown(years: float) -> TimeLeft:
    y = float(years) if math.isfinite(float(years)) else 0.0
    days = max(0, _round_half_up(y * 365.25))
    return TimeLeft(
        years=max(0, _round_half_up(y)),
        months=max(0, _round_half_up(y * 12)),
        weeks=max(0, _round_half_up(days / 7)),
        days=days,
        hours=max(0, _round_half_up(days * 24)),
    )


# ----------------------- recommendations -----------------------

REC_SLEEP = (
    "ตั้งเป้านอน 7–9 ชั่วโมง/คืน ตื่นเวลาเดิม ลดคาเฟอีนช่วงค่ำ และลดหน้าจอ 1 ชั่วโมงก่อนนอน",
    "Aim for 7–9 hours/night. Fixed wake time, limit late caffeine, dim screens 1 hour before bed.",
)
REC_EXERCISE = (
    "ออกกำลังกายอย่างน้อย 150 นาที/สัปดาห์ (เช่น เดินเร็ว 30 นาที 5 วัน/สัปดาห์)",
    "Accumulate ≥150 min/week of moderate activity (e.g., 30 min brisk walk, 5 days/week).",
)
REC_STRESS = (
    "ลดความเครียดเรื้อรัง: พักฟื้น 3 ครั้ง/วัน ครั้งละ 5 นาที (เดิน หายใจ ยืดเหยียด); พิจารณา CBT/โค้ชหากจำเป็น",
    "Lower chronic stress: insert 3×5-minute recovery breaks/day (walk, breathe, stretch); "
    "consider CBT/coaching if needed.",
)
REC_SOCIAL = (
    "นัดพบปะ/สนทนาที่มีความหมาย 3–5 ครั้งต่อสัปดาห์",
    "Schedule 3–5 meaningful social interactions per week.",
)
REC_MINDFULNESS = (
    "ฝึกสติ 10–15 นาทีทุกวัน",
    "Practice mindfulness 10–15 minutes daily.",
)
REC_FALLBACK = (
    "คุณใกล้เคียงโซนเหมาะสมแล้ว รักษาวินัยและต่อยอดความสัมพันธ์และความหมายในชีวิต",
    "You are close to optimal. Maintain routines and deepen relationships and meaning.",
)


def generate_recommendations_bilingual(inputs: Any) -> Recommendations:
    """
    Fixed threshold rules, in order: sleep outside 7–9h, exercise < 2.5h/week,
    stress >= 6, social contacts < 3, mindfulness < 10 min/day. Falls back to a
    single "keep going" message when nothing fires.

    A mapping that omits socialContactsPerWeek / mindfulnessMinutesPerDay skips
    those two rules instead of using defaults.
    """
    if isinstance(inputs, HappinessInputs):
        inp = inputs
        has_social = has_mindful = True
    else:
        inp = HappinessInputs.from_mapping(inputs)
        has_social = "socialContactsPerWeek" in (inputs or {})
        has_mindful = "mindfulnessMinutesPerDay" in (inputs or {})

    fired = []
    if inp.sleep_hours_per_night < 7 or inp.sleep_hours_per_night > 9:
        fired.append(REC_SLEEP)
    if inp.exercise_hours_per_week < 2.5:
        fired.append(REC_EXERCISE)
    if inp.stress_level >= 6:
        fired.append(REC_STRESS)
    if has_social and inp.social_contacts_per_week < 3:
        fired.append(REC_SOCIAL)
    if has_mindful and inp.mindfulness_minutes_per_day < 10:
        fired.append(REC_MINDFULNESS)

    if not fired:
        fired.append(REC_FALLBACK)

    logger.debug("recommendations", count=len(fired))
    return Recommendations(th=[t for t, _ in fired], en=[e for _, e in fired])


__all__ = [
    "ALL_KEYS",
    "FIELD_KEYS",
    "MINIMAL_KEYS",
    "HappinessInputs",
    "Recommendations",
    "ScoreBreakdown",
    "TimeLeft",
    "clamp01",
    "estimate_adjusted_expectancy",
    "exercise_score",
    "generate_recommendations_bilingual",
    "saturating_above",
    "score_breakdown",
    "sleep_score",
    "stress_score",
    "time_left_breakdown",
    "triangular_optimal",
    "years_left",
]

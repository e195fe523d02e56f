from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

from persist import format_number, parse_number


@dataclass(frozen=True)
class FieldSpec:
    key: str                 # external key, e.g. "sleepHoursPerNight"
    label_th: str
    label_en: str
    info_title_th: str
    info_title_en: str
    info_th: str
    info_en: str
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    step: float = 1.0

    def label(self, lang: str) -> str:
        return self.label_th if lang == "th" else self.label_en

    def info_title(self, lang: str) -> str:
        return self.info_title_th if lang == "th" else self.info_title_en

    def info(self, lang: str) -> str:
        return self.info_th if lang == "th" else self.info_en


FORM_FIELDS: List[FieldSpec] = [
    FieldSpec(
        key="age",
        label_th="อายุ (ปี)", label_en="Age (years)",
        info_title_th="อายุ", info_title_en="Age",
        info_th="ใช้อายุปัจจุบันในการคำนวณเวลาโดยประมาณที่เหลืออยู่",
        info_en="Current age used to estimate time left.",
        min_value=0, max_value=110, step=1,
    ),
    FieldSpec(
        key="sleepHoursPerNight",
        label_th="นอน/คืน (ชม.)", label_en="Sleep/night (hrs)",
        info_title_th="การนอน", info_title_en="Sleep",
        info_th="โซนดี 7–9 ชม./คืน",
        info_en="7–9 hours per night is a good zone.",
        min_value=0, max_value=14, step=0.5,
    ),
    FieldSpec(
        key="exerciseHoursPerWeek",
        label_th="ออกกำลัง/สัปดาห์ (ชม.)", label_en="Exercise/week (hrs)",
        info_title_th="ออกกำลังกาย", info_title_en="Exercise",
        info_th="เป้าหมาย ~150 นาที/สัปดาห์",
        info_en="Aim ~150 min/week.",
        min_value=0, max_value=20, step=0.5,
    ),
    FieldSpec(
        key="stressLevel",
        label_th="เครียด (1–10)", label_en="Stress (1–10)",
        info_title_th="ความเครียด", info_title_en="Stress",
        info_th="ยิ่งต่ำยิ่งดี ใส่ช่วงพักฟื้นระหว่างวัน",
        info_en="Lower is better; add recovery breaks.",
        min_value=1, max_value=10, step=1,
    ),
]


def _step_decimals(step: float) -> int:
    # 0.5 -> 1, 0.25 -> 2, 1 -> 0
    exp = Decimal(repr(float(step))).normalize().as_tuple().exponent
    return max(0, -int(exp))


def snap_to_step(value: float, step: float) -> float:
    if step <= 0:
        return value
    snapped = math.floor(value / step + 0.5) * step
    return round(snapped, _step_decimals(step))


def commit_value(raw: str, spec: FieldSpec, last: float) -> float:
    """
    Parse what the user typed (comma accepted as decimal point), snap it to the
    step grid and clamp to the field range. Unparseable text keeps `last`.
    """
    n = parse_number(str(raw).replace(",", "."))
    if n is None:
        return last
    n = snap_to_step(n, spec.step)
    if spec.min_value is not None:
        n = max(float(spec.min_value), n)
    if spec.max_value is not None:
        n = min(float(spec.max_value), n)
    return float(n)


def display_value(v: float) -> str:
    v = float(v)
    if not math.isfinite(v):
        return ""
    return format_number(v)

import streamlit as st
import structlog

from config import configure_logging, get_settings
from engine import (
    FIELD_KEYS,
    HappinessInputs,
    estimate_adjusted_expectancy,
    generate_recommendations_bilingual,
    score_breakdown,
    time_left_breakdown,
    years_left,
)
from fields import FORM_FIELDS, commit_value, display_value
from life_calendar import calendar_figure, calendar_frame, calendar_summary, caption
from persist import (
    JsonFileStorage,
    get_stored_theme,
    query_params_for,
    resolve_initial_inputs,
    save_inputs,
)

settings = get_settings()
configure_logging(settings.logging)
logger = structlog.get_logger("app")

st.set_page_config(page_title="Life & Happiness Calculator", page_icon="📅", layout="centered")

storage = JsonFileStorage(settings.storage_path)

# ---------- Texts (TH / EN) ----------
TEXT = {
    "th": {
        "subtitle": "กรอกเพียง 4 ช่อง แล้วเห็นเวลาโดยประมาณที่เหลืออยู่แบบเรียลไทม์ "
                    "ทั้งเป็นปี เดือน สัปดาห์ วัน ชั่วโมง เพื่อใช้กับสิ่งที่สำคัญและคนที่คุณรัก",
        "realtime": "เวลาที่เหลือโดยประมาณ (Realtime)",
        "units": ["ปี", "เดือน", "สัปดาห์", "วัน", "ชั่วโมง"],
        "why": "ที่มาของตัวเลข",
        "disclaimer": "ค่านี้เป็นการประมาณแบบ heuristic เพื่อการสะท้อนตนเอง ไม่ใช่คำแนะนำทางการแพทย์",
        "ideas": "ไอเดียปรับง่าย ๆ",
        "refs": "อ้างอิงงานวิจัย (ย่อ)",
    },
    "en": {
        "subtitle": "Fill in just 4 fields to see your estimated time left in real time, "
                    "in years, months, weeks, days and hours, for what matters and the people you love.",
        "realtime": "Estimated time left (realtime)",
        "units": ["years", "months", "weeks", "days", "hours"],
        "why": "Where the number comes from",
        "disclaimer": "This is a heuristic estimate for self-reflection, not medical advice.",
        "ideas": "Quick improvement ideas",
        "refs": "Research references (short)",
    },
}

REFERENCES = [
    "WHO Physical Activity Guidelines (~150–300 นาที/สัปดาห์)",
    "Sleep research: ผู้ใหญ่ควรนอน 7–9 ชั่วโมง/คืน",
    "Mindfulness-based stress reduction: หลักฐานลดความเครียดระดับเล็กถึงปานกลาง",
    "เวลาในธรรมชาติ ~120 นาที/สัปดาห์ เชื่อมโยงกับสุขภาวะที่ดี",
    "ความสัมพันธ์และความพึงพอใจชีวิต: หลายการศึกษายืนยันความเชื่อมโยงเชิงบวก",
]


def _raw_key(field_key: str) -> str:
    return f"raw_{field_key}"


def _seed_raw_values(inputs: HappinessInputs) -> None:
    for spec in FORM_FIELDS:
        st.session_state[_raw_key(spec.key)] = display_value(getattr(inputs, FIELD_KEYS[spec.key]))


def _commit(spec_key: str) -> None:
    """on_change: parse the text box, snap/clamp it, write the committed value back into the box."""
    spec = next(s for s in FORM_FIELDS if s.key == spec_key)
    attr = FIELD_KEYS[spec_key]
    inputs: HappinessInputs = st.session_state.inputs
    last = getattr(inputs, attr)
    value = commit_value(st.session_state.get(_raw_key(spec_key), ""), spec, last)
    st.session_state.inputs = inputs.replace(**{attr: value})
    st.session_state[_raw_key(spec_key)] = display_value(value)


def _toggle_lang() -> None:
    st.session_state.lang = "en" if st.session_state.lang == "th" else "th"


# ------------------ Start-up: URL + storage + theme (once per session) ------------------
if "inputs" not in st.session_state:
    st.session_state.inputs = resolve_initial_inputs(storage, st.query_params.to_dict())
    st.session_state.lang = settings.default_language
    # Theme is read once; there is no runtime toggle
    st.session_state.theme = get_stored_theme(storage) or settings.default_theme
    _seed_raw_values(st.session_state.inputs)
    logger.info("session_started", theme=st.session_state.theme, lang=st.session_state.lang)

lang = st.session_state.lang
theme = st.session_state.theme
T = TEXT[lang]

# ------------------ Header ------------------
head_l, head_r = st.columns([6, 1])
with head_l:
    st.title("ปฏิทินชีวิต (Life Calendar)")
    st.caption(T["subtitle"])
with head_r:
    st.button("EN" if lang == "th" else "TH", on_click=_toggle_lang, key="lang_toggle")

# Calendar placeholder sits above the inputs but renders after they commit
calendar_slot = st.container()

# ------------------ Four inputs ------------------
cols = st.columns(len(FORM_FIELDS))
for col, spec in zip(cols, FORM_FIELDS):
    with col:
        st.text_input(
            spec.label(lang),
            key=_raw_key(spec.key),
            on_change=_commit,
            args=(spec.key,),
            help=f"**{spec.info_title(lang)}**  \n{spec.info(lang)}",
        )

inputs: HappinessInputs = st.session_state.inputs

# ------------------ Compute ------------------
expectancy = estimate_adjusted_expectancy(inputs)
left = years_left(inputs)
breakdown = score_breakdown(inputs)

# ------------------ Persist + share URL ------------------
save_inputs(storage, inputs)
st.query_params.from_dict(query_params_for(inputs))

# ------------------ HERO: life calendar ------------------
with calendar_slot:
    summary = calendar_summary(inputs.age, expectancy, years_left=left)
    legend = summary.legend(lang)
    st.subheader(legend["title"])
    st.caption(
        f"■ {legend['past']} {legend['past_count']}   "
        f"■ {legend['now']}   "
        f"■ {legend['left']} {legend['left_count']}"
    )
    df_cal = calendar_frame(inputs.age, expectancy, years_left=left, lang=lang)
    st.plotly_chart(calendar_figure(df_cal, lang=lang, theme=theme), use_container_width=True)
    st.caption(caption(lang))

# ------------------ Live time-left breakdown ------------------
st.subheader(T["realtime"])
tl = time_left_breakdown(left)
values = [tl.years, tl.months, tl.weeks, tl.days, tl.hours]
for c, unit, v in zip(st.columns(5), T["units"], values):
    with c:
        st.metric(unit, f"{v:,}")

with st.expander(T["why"], expanded=False):
    st.dataframe(
        {
            "score": ["sleep", "exercise", "stress", "composite"],
            "0–1": [breakdown.sleep01, breakdown.exercise01, breakdown.stress01, breakdown.composite01],
            "Δ years": [breakdown.sleep_delta, breakdown.exercise_delta,
                        breakdown.stress_delta, breakdown.composite_delta],
        },
        use_container_width=True,
        hide_index=True,
    )

st.caption(T["disclaimer"])

# ------------------ Suggestions ------------------
st.subheader(T["ideas"])
recs = generate_recommendations_bilingual(inputs)
st.markdown("\n".join(f"- {r}" for r in recs.for_lang(lang, settings.max_recommendations)))

# ------------------ References ------------------
st.subheader(T["refs"])
st.markdown("\n".join(f"- {r}" for r in REFERENCES))
st.caption("สูตรนี้เป็น heuristic ที่โปร่งใส ไม่ใช่การวินิจฉัยทางการแพทย์ และอาจปรับแต่งตามบริบทได้")

"""
AI Situational-Judgment Exam Generator - Streamlit Web App
==========================================================
Mock exam for the Seoul Metro grade-3 situational-judgment test.
Requires: streamlit, anthropic, requests
Secret:   ANTHROPIC_API_KEY = "sk-ant-..."
Optional: SHEET_WEBHOOK_URL = "https://script.google.com/macros/s/.../exec"
Run:      streamlit run exam_app.py
"""

import html
import logging
from datetime import datetime

import anthropic
import streamlit as st

from exam_config import configure_logging, load_settings
from exam_engine import (
    LETTERS,
    MAX_SELECTIONS,
    SUBJECTS,
    TOTAL_QUESTIONS,
    AnswerSheet,
    max_score,
    score_label,
)
from question_service import QuestionGenerationError, iter_exam
from sheet_logger import SheetLogger

logger = logging.getLogger(__name__)

# ─────────────────────────────────────────────────────────────────────────────
# PAGE CONFIG
# ─────────────────────────────────────────────────────────────────────────────
st.set_page_config(
    page_title="AI 문제 생성기",
    page_icon="💡",
    layout="centered",
    initial_sidebar_state="auto",
)

# ─────────────────────────────────────────────────────────────────────────────
# CLIENTS
# ─────────────────────────────────────────────────────────────────────────────
def get_settings():
    return load_settings(st.secrets)


@st.cache_resource
def _anthropic_client(api_key):
    return anthropic.Anthropic(api_key=api_key)


def get_client(settings):
    """Create the Anthropic client once per key and reuse it."""
    if not settings.api_key:
        st.error(
            "🔑 **API key missing.** "
            "Go to your Streamlit dashboard → app ⋯ → Settings → Secrets "
            "and add:  ANTHROPIC_API_KEY = \"sk-ant-...\""
        )
        st.stop()
    return _anthropic_client(settings.api_key)


@st.cache_resource
def get_sheet_logger(url, timeout):
    return SheetLogger(url, timeout=timeout)

# ─────────────────────────────────────────────────────────────────────────────
# SESSION STATE
# ─────────────────────────────────────────────────────────────────────────────
def init_session():
    defaults = {
        "screen":    "idle",
        "questions": [],
        "sheet":     AnswerSheet(),
        "error_msg": None,
    }
    for k, v in defaults.items():
        if k not in st.session_state:
            st.session_state[k] = v

def reset_test():
    for k in ["questions", "sheet", "error_msg"]:
        st.session_state.pop(k, None)
    st.session_state.screen = "idle"
    init_session()

# ─────────────────────────────────────────────────────────────────────────────
# CSS
# ─────────────────────────────────────────────────────────────────────────────
CSS = """
<style>
.passage {
    background: #f8fafc; border: 1px solid #e5e7eb; border-radius: 8px;
    padding: 1.2rem; line-height: 1.7; white-space: pre-wrap;
}
.badge {
    display: inline-block; border-radius: 999px;
    padding: 2px 10px; font-size: 13px; font-weight: 700; margin-left: 6px;
}
.result-box {
    text-align: center; border: 1px solid #e5e7eb; border-radius: 16px;
    padding: 1.5rem; position: sticky; top: 1rem; background: white; z-index: 10;
}
.result-score { font-size: 3rem; font-weight: 900; color: #2563eb; }
</style>
"""

def render_header():
    st.markdown(CSS, unsafe_allow_html=True)
    st.markdown("# 💡 AI 문제 생성기")
    st.markdown("*서울교통공사 3급 상황판단역량 시험*")
    st.divider()

def render_footer():
    st.divider()
    st.caption(f"© {datetime.now().year} AI Exam Generator. All rights reserved.")

def render_error():
    if not st.session_state.error_msg:
        return
    st.error(f"**오류 발생!**\n\n{st.session_state.error_msg}")
    if st.button("새로 시작하기", key="error_reset"):
        reset_test()
        st.rerun()

# ─────────────────────────────────────────────────────────────────────────────
# QUESTION CARD
# ─────────────────────────────────────────────────────────────────────────────
def _badge(score):
    info = score_label(score)
    c = info["color"]
    return (f'<span class="badge" style="background:{c}22;color:{c};border:1px solid {c}55;">'
            f'{info["label"]} ({score}점)</span>')

def render_question(q, idx, mode):
    """mode: "preview" while loading, "answer" for selection, "review" after submit."""
    sheet = st.session_state.sheet
    with st.container(border=True):
        st.markdown(f"### 문제 {idx + 1}.")
        st.caption(q.subject)
        st.markdown(f'<div class="passage">{html.escape(q.passage)}</div>', unsafe_allow_html=True)
        st.write("")
        st.markdown(f"**선택지 ({MAX_SELECTIONS}개 선택)**")

        for j, opt in enumerate(q.options):
            label = f"**{LETTERS[j]}.** {opt.text}"
            picked = sheet.is_selected(idx, j)
            if mode == "answer":
                if st.button(label, key=f"opt_{idx}_{j}",
                             type="primary" if picked else "secondary",
                             use_container_width=True):
                    sheet.toggle(idx, j)
                    st.rerun()
            elif mode == "review":
                mark = "  ← 선택" if picked else ""
                st.markdown(f"**{LETTERS[j]}.** {html.escape(opt.text)} {_badge(opt.score)}{mark}",
                            unsafe_allow_html=True)
            else:
                st.markdown(label)

        if mode == "review":
            with st.expander("📖 해설", expanded=True):
                st.write(q.explanation)

# ─────────────────────────────────────────────────────────────────────────────
# SCREEN — IDLE
# ─────────────────────────────────────────────────────────────────────────────
def screen_idle():
    if st.session_state.error_msg:
        return
    st.markdown("## 전체 과목 모의고사")
    st.write(
        f"서울교통공사 3급 상황판단역량 시험의 모든 과목(총 {len(SUBJECTS)}과목, "
        f"{TOTAL_QUESTIONS}문제)에 대한 모의고사를 시작합니다. "
        "준비가 되셨으면 아래 버튼을 눌러 시험을 시작하세요."
    )
    for name in SUBJECTS:
        st.caption(f"• {name}")

    if st.button(f"시험 시작하기 ({TOTAL_QUESTIONS}문제)", type="primary",
                 use_container_width=True):
        st.session_state.questions = []
        st.session_state.sheet     = AnswerSheet()
        st.session_state.error_msg = None
        st.session_state.screen    = "loading"
        st.rerun()

# ─────────────────────────────────────────────────────────────────────────────
# SCREEN — LOADING (streams questions in as they are generated)
# ─────────────────────────────────────────────────────────────────────────────
def screen_loading(settings):
    """
    Generate the whole exam in one script run, rendering each question as it lands.
    A rerun mid-generation discards the partial exam and generates fresh
    questions; each generated question is sent to the sheet once, so rows from
    the abandoned run stay in the audit log.
    """
    client    = get_client(settings)
    recorder  = get_sheet_logger(settings.sheet_url, settings.sheet_timeout)
    # An interrupted run restarts the exam from scratch
    questions = st.session_state.questions = []

    bar = st.progress(0.0, text=f"AI가 문제를 생성하고 있습니다... (0/{TOTAL_QUESTIONS})")
    st.caption("실시간으로 문제가 표시됩니다. 모든 문제가 생성될 때까지 "
               "페이지를 벗어나지 마세요. (약 1분 ~ 2분 소요)")
    feed = st.container()

    try:
        with st.spinner("AI가 문제를 생성하고 있습니다..."):
            for q in iter_exam(client, on_question=recorder.save,
                               model=settings.model, max_tokens=settings.max_tokens):
                questions.append(q)
                n = len(questions)
                bar.progress(n / TOTAL_QUESTIONS,
                             text=f"AI가 문제를 생성하고 있습니다... ({n}/{TOTAL_QUESTIONS})")
                with feed:
                    render_question(q, n - 1, "preview")
    except QuestionGenerationError as exc:
        st.session_state.error_msg = str(exc)

    st.session_state.screen = "answering" if questions else "idle"
    st.rerun()

# ─────────────────────────────────────────────────────────────────────────────
# SCREEN — ANSWERING
# ─────────────────────────────────────────────────────────────────────────────
def screen_answering():
    questions = st.session_state.questions
    sheet     = st.session_state.sheet

    for i, q in enumerate(questions):
        render_question(q, i, "answer")

    if questions:
        st.write("")
        if st.button("답안 제출", type="primary", use_container_width=True):
            logger.info("Exam submitted: %d/%d questions answered",
                        sheet.answered_count(), len(questions))
            st.session_state.screen = "submitted"
            st.rerun()

    # ── Sidebar navigator ─────────────────────────────────────────────────
    with st.sidebar:
        st.markdown("### 📋 Progress")
        cols = st.columns(5)
        for i in range(len(questions)):
            picks = len(sheet.selected(i))
            mark = "✅" if picks == MAX_SELECTIONS else "◐" if picks else f"_{i+1}_"
            cols[i % 5].markdown(mark)
        st.divider()
        st.caption(f"✅ {MAX_SELECTIONS}개 선택  ◐ 1개 선택")

# ─────────────────────────────────────────────────────────────────────────────
# SCREEN — SUBMITTED
# ─────────────────────────────────────────────────────────────────────────────
def screen_submitted():
    questions = st.session_state.questions
    sheet     = st.session_state.sheet
    total     = sheet.total_score(questions)
    best      = max_score(questions)

    st.markdown(
        f'<div class="result-box"><h2>시험 결과</h2>'
        f'<span class="result-score">{total}</span> / {best}점</div>',
        unsafe_allow_html=True,
    )
    if st.button("새로운 시험 시작하기", type="primary", use_container_width=True):
        reset_test()
        st.rerun()

    st.markdown("### 📚 과목별 점수")
    for subject, s in sheet.subject_breakdown(questions).items():
        pct = s["score"] / s["max"] if s["max"] else 0
        st.progress(pct, text=f"{subject} — {s['score']}/{s['max']}점 ({s['total']}문제)")

    st.divider()
    for i, q in enumerate(questions):
        render_question(q, i, "review")

# ─────────────────────────────────────────────────────────────────────────────
# MAIN
# ─────────────────────────────────────────────────────────────────────────────
def main():
    settings = get_settings()
    configure_logging(settings.log_level)
    init_session()
    render_header()
    render_error()

    s = st.session_state.screen
    if   s == "idle":      screen_idle()
    elif s == "loading":   screen_loading(settings)
    elif s == "answering": screen_answering()
    elif s == "submitted": screen_submitted()
    else:
        st.error(f"Unknown screen: {s}")
        reset_test()
    render_footer()

if __name__ == "__main__":
    main()

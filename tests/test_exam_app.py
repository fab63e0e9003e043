import json
import types
from pathlib import Path

import anthropic
import pytest
import streamlit as st
from streamlit.testing.v1 import AppTest

from exam_engine import SUBJECTS, AnswerSheet, Option, Question

APP = str(Path(__file__).resolve().parents[1] / "exam_app.py")


@pytest.fixture(autouse=True)
def no_env_key(monkeypatch):
    for name in ("ANTHROPIC_API_KEY", "SHEET_WEBHOOK_URL"):
        monkeypatch.delenv(name, raising=False)
    st.cache_resource.clear()
    yield
    st.cache_resource.clear()


def make_question(scores):
    return Question(
        passage="상황",
        options=[Option(text=f"행동 {i}", score=s) for i, s in enumerate(scores)],
        explanation="해설",
        subject=SUBJECTS[0],
    )


def make_reply():
    return json.dumps({
        "passage": "야간 운행 중 신호 장애가 발생했다.",
        "options": [{"text": f"조치 {i}", "score": s} for i, s in enumerate((3, 2, 1, 1, 3))],
        "explanation": "안전을 우선한다.",
    })


class StubMessages:
    def __init__(self, replies):
        self._replies = list(replies)
        self.calls = 0

    def create(self, *, model, max_tokens, messages):
        self.calls += 1
        reply = self._replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return types.SimpleNamespace(content=[types.SimpleNamespace(text=reply)])


@pytest.fixture
def stub_claude(monkeypatch):
    """Install canned Claude replies; returns the setter."""
    monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-test")
    holder = {}

    def install(replies):
        holder["messages"] = StubMessages(replies)
        monkeypatch.setattr(
            anthropic, "Anthropic",
            lambda api_key: types.SimpleNamespace(messages=holder["messages"]),
        )
        return holder["messages"]

    return install


def start_exam():
    at = AppTest.from_file(APP, default_timeout=30).run()
    at.button[0].click().run()
    return at


def labels(at):
    return [b.label for b in at.button]


def test_idle_screen_offers_start_button():
    at = AppTest.from_file(APP).run()
    assert not at.exception
    assert at.session_state["screen"] == "idle"
    assert at.button[0].label == "시험 시작하기 (10문제)"


def test_start_without_api_key_shows_error():
    at = start_exam()
    assert at.session_state["screen"] == "loading"
    assert any("API key missing" in e.value for e in at.error)


def test_full_exam_reaches_answering(stub_claude):
    messages = stub_claude([make_reply() for _ in range(10)])
    at = start_exam()
    assert not at.exception
    assert at.session_state["screen"] == "answering"
    assert len(at.session_state["questions"]) == 10
    assert [q.subject for q in at.session_state["questions"]] == [s for s in SUBJECTS for _ in range(2)]
    assert messages.calls == 10
    assert "답안 제출" in labels(at)
    assert not at.error


def test_option_toggle_and_submit(stub_claude):
    stub_claude([make_reply() for _ in range(10)])
    at = start_exam()
    at.button(key="opt_0_0").click().run()
    at.button(key="opt_0_4").click().run()
    at.button(key="opt_0_1").click().run()
    assert at.session_state["sheet"].selected(0) == [0, 4]
    at.button(key="opt_0_4").click().run()
    assert at.session_state["sheet"].selected(0) == [0]

    at.button(key="opt_0_4").click().run()
    next(b for b in at.button if b.label == "답안 제출").click().run()
    assert at.session_state["screen"] == "submitted"
    assert any('result-score">6<' in m.value for m in at.markdown)
    assert any("</span> / 60점" in m.value for m in at.markdown)


def test_mid_run_failure_keeps_partial_exam(stub_claude):
    messages = stub_claude([make_reply(), make_reply(), make_reply(), RuntimeError("quota exceeded")])
    at = start_exam()
    assert not at.exception
    assert at.session_state["screen"] == "answering"
    assert len(at.session_state["questions"]) == 3
    assert messages.calls == 4
    assert any("오류 발생!" in e.value and "quota exceeded" in e.value for e in at.error)
    assert "답안 제출" in labels(at)
    assert "새로 시작하기" in labels(at)


def test_failure_without_questions_returns_to_idle(stub_claude):
    stub_claude([RuntimeError("invalid key")])
    at = start_exam()
    assert at.session_state["screen"] == "idle"
    assert at.session_state["questions"] == []
    assert any("AI 문제 생성 실패: invalid key" in e.value for e in at.error)
    # intro and start button stay hidden behind the error box
    assert labels(at) == ["새로 시작하기"]


def test_error_reset_returns_to_clean_idle(stub_claude):
    stub_claude([make_reply(), RuntimeError("timeout")])
    at = start_exam()
    at.button(key="error_reset").click().run()
    assert at.session_state["screen"] == "idle"
    assert at.session_state["questions"] == []
    assert at.session_state["error_msg"] is None
    assert not at.error
    assert at.button[0].label == "시험 시작하기 (10문제)"


def test_submitted_screen_shows_total_and_max():
    at = AppTest.from_file(APP)
    sheet = AnswerSheet()
    sheet.toggle(0, 0)
    sheet.toggle(0, 1)
    at.session_state["screen"] = "submitted"
    at.session_state["questions"] = [make_question([3, 2, 1, 1, 3])]
    at.session_state["sheet"] = sheet
    at.session_state["error_msg"] = None
    at.run()
    assert not at.exception
    assert any("</span> / 6점" in m.value for m in at.markdown)
    assert any('result-score">5<' in m.value for m in at.markdown)

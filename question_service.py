"""
Question generation via Claude, and the sequential exam loop.
"""

import json
import logging

from exam_engine import (
    OPTIONS_PER_QUESTION,
    QUESTIONS_PER_SUBJECT,
    SUBJECTS,
    VALID_SCORES,
    Question,
)

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-haiku-4-5-20251001"
DEFAULT_MAX_TOKENS = 4000
REQUIRED_FIELDS = ("passage", "options", "explanation")


class QuestionGenerationError(RuntimeError):
    """Raised when a question cannot be produced for a subject."""


def build_prompt(subject):
    return (
        f'Generate a JSON object for a situational judgment question about the subject "{subject}".\n'
        f"The passage must be a detailed and realistic work-related scenario requiring complex "
        f"judgment, approximately two-thirds of an A4 page in length, presenting a clear dilemma.\n"
        f"Provide exactly {OPTIONS_PER_QUESTION} options. Assign scores of 1, 2, or 3 to the options "
        f"(1 = worst, 2 = suboptimal, 3 = best).\n"
        f"The explanation should be concise and justify the best course of action.\n\n"
        f"Reply with ONLY this JSON and nothing else:\n"
        f'{{"passage":"...","options":[{{"text":"...","score":3}}, ...],'
        f'"explanation":"...","subject":"{subject}"}}'
    )


def _decode_reply(raw):
    raw = raw.strip()
    raw = raw.replace("```json", "").replace("```", "").strip()
    # Skip any sentence the model put before or after the JSON object
    idx = raw.find("{")
    if idx == -1:
        return json.loads(raw)
    data, _ = json.JSONDecoder().raw_decode(raw, idx)
    return data


def _require_text(value, what):
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"AI returned invalid data format ({what} must be non-empty text).")


def parse_question(raw, subject):
    """Decode a model reply into a Question pinned to ``subject``."""
    data = _decode_reply(raw)
    if not isinstance(data, dict):
        raise ValueError("AI returned invalid data format (not a JSON object).")
    for name in REQUIRED_FIELDS:
        if name not in data:
            raise ValueError(f"AI returned invalid data format (missing {name}).")
    _require_text(data["passage"], "passage")
    _require_text(data["explanation"], "explanation")
    options = data["options"]
    if not isinstance(options, list) or len(options) != OPTIONS_PER_QUESTION:
        raise ValueError("AI returned invalid data format (e.g., not 5 options).")
    for opt in options:
        if not isinstance(opt, dict) or "text" not in opt or "score" not in opt:
            raise ValueError("AI returned invalid data format (option needs text and score).")
        _require_text(opt["text"], "option text")
        if isinstance(opt["score"], bool) or not isinstance(opt["score"], int):
            raise ValueError("AI returned invalid data format (score must be an integer).")
        if opt["score"] not in VALID_SCORES:
            raise ValueError(f"AI returned invalid data format (score {opt['score']} not in 1-3).")
    return Question.from_dict(data, subject=subject)


def generate_question(client, subject, model=DEFAULT_MODEL, max_tokens=DEFAULT_MAX_TOKENS):
    """
    Generate one question for ``subject`` with a single Claude call.
    Any failure is logged and re-raised as QuestionGenerationError.
    """
    if subject not in SUBJECTS:
        raise ValueError(f"A valid subject must be provided, got {subject!r}.")

    try:
        response = client.messages.create(
            model=model,
            max_tokens=max_tokens,
            messages=[{"role": "user", "content": build_prompt(subject)}],
        )
        return parse_question(response.content[0].text, subject)
    except Exception as exc:
        logger.exception("Error generating question for subject %r", subject)
        raise QuestionGenerationError(f"AI 문제 생성 실패: {exc}") from exc


def iter_exam(client, subjects=None, per_subject=QUESTIONS_PER_SUBJECT, on_question=None,
              model=DEFAULT_MODEL, max_tokens=DEFAULT_MAX_TOKENS):
    """
    Yield questions one by one, subject by subject, in order.
    ``on_question`` is called after each yield (audit hook). The first
    failure ends the exam; already-yielded questions stay with the caller.
    """
    subjects = SUBJECTS if subjects is None else subjects
    total = len(subjects) * per_subject
    count = 0
    for subject in subjects:
        for _ in range(per_subject):
            question = generate_question(client, subject, model=model, max_tokens=max_tokens)
            count += 1
            logger.info("Generated question %d/%d (%s)", count, total, subject)
            yield question
            if on_question is not None:
                on_question(question)

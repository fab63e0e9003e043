"""
Exam model and scoring for the situational-judgment mock exam.
Questions hold five scored options; the candidate picks two per question.
"""

from dataclasses import dataclass, field

# ─────────────────────────────────────────────────────────────────────────────
# DATA
# ─────────────────────────────────────────────────────────────────────────────
SUBJECTS = [
    "지휘감독능력",
    "책임감 및 적극성",
    "관리자로서의 자세 및 청렴도",
    "경영의식 및 혁신성",
    "업무의이해도 및 상황대응력",
]

QUESTIONS_PER_SUBJECT = 2
TOTAL_QUESTIONS = len(SUBJECTS) * QUESTIONS_PER_SUBJECT
OPTIONS_PER_QUESTION = 5
MAX_SELECTIONS = 2
VALID_SCORES = (1, 2, 3)
LETTERS = ["A", "B", "C", "D", "E"]

SCORE_LABELS = {
    3: {"label": "최선의 선택", "color": "#3aae6a"},
    2: {"label": "차선의 선택", "color": "#c8a820"},
    1: {"label": "최악의 선택", "color": "#e05c5c"},
}
OTHER_LABEL = {"label": "기타", "color": "#888888"}


@dataclass
class Option:
    text: str
    score: int


@dataclass
class Question:
    passage: str
    options: list
    explanation: str
    subject: str

    @staticmethod
    def from_dict(d, subject=None):
        return Question(
            passage=d["passage"],
            options=[Option(text=o["text"], score=int(o["score"])) for o in d["options"]],
            explanation=d["explanation"],
            subject=subject if subject is not None else d["subject"],
        )

    def to_dict(self):
        return {
            "passage": self.passage,
            "options": [{"text": o.text, "score": o.score} for o in self.options],
            "explanation": self.explanation,
            "subject": self.subject,
        }


def score_label(score):
    """Badge text and colour for an option score."""
    return SCORE_LABELS.get(score, OTHER_LABEL)


def question_max(question):
    top = sorted((o.score for o in question.options), reverse=True)[:MAX_SELECTIONS]
    return sum(top)


def max_score(questions):
    """Best achievable total: the two highest option scores of every question."""
    return sum(question_max(q) for q in questions)


# ─────────────────────────────────────────────────────────────────────────────
# ANSWER SHEET
# ─────────────────────────────────────────────────────────────────────────────
@dataclass
class AnswerSheet:
    """Selected option indexes per question index, at most two each."""

    answers: dict = field(default_factory=dict)

    def toggle(self, q_idx, o_idx):
        current = list(self.answers.get(q_idx, []))
        if o_idx in current:
            current.remove(o_idx)
        elif len(current) < MAX_SELECTIONS:
            current.append(o_idx)
        self.answers[q_idx] = current
        return current

    def selected(self, q_idx):
        return list(self.answers.get(q_idx, []))

    def is_selected(self, q_idx, o_idx):
        return o_idx in self.answers.get(q_idx, [])

    def answered_count(self):
        return sum(1 for picks in self.answers.values() if picks)

    def question_score(self, questions, q_idx):
        if not 0 <= q_idx < len(questions):
            return 0
        options = questions[q_idx].options
        return sum(options[o].score for o in self.answers.get(q_idx, []) if 0 <= o < len(options))

    def total_score(self, questions):
        return sum(self.question_score(questions, q_idx) for q_idx in self.answers)

    def subject_breakdown(self, questions):
        stats = {}
        for i, q in enumerate(questions):
            s = stats.setdefault(q.subject, {"score": 0, "max": 0, "total": 0})
            s["score"] += self.question_score(questions, i)
            s["max"] += question_max(q)
            s["total"] += 1
        order = {name: pos for pos, name in enumerate(SUBJECTS)}
        return dict(sorted(stats.items(), key=lambda kv: order.get(kv[0], len(order))))

    def clear(self):
        self.answers.clear()

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime

from app.domain.quiz.ids import OptionId, QuestionId
from app.domain.quiz.session import QuizSession
from app.services.question_catalog import QuestionDetails


@dataclass(frozen=True)
class AnswerOptionResult:
    id: OptionId
    text: str
    is_correct: bool
    was_selected: bool


@dataclass(frozen=True)
class AnswerResult:
    question_id: QuestionId
    question_text: str
    selected_option_ids: list[OptionId]
    correct_option_ids: list[OptionId]
    is_correct: bool
    submitted_at: datetime
    options: list[AnswerOptionResult]


@dataclass(frozen=True)
class ScoreSummary:
    correct_answers: int
    total_questions: int
    percentage: int
    passed: bool | None
    passing_percentage: int | None


def is_answer_correct(selected_option_ids: Sequence[OptionId], correct_option_ids: Sequence[OptionId]) -> bool:
    return set(selected_option_ids) == set(correct_option_ids)


def build_answer_results(
    session: QuizSession, details: Mapping[QuestionId, QuestionDetails]
) -> tuple[list[AnswerResult], int]:
    """Score every submitted answer in question order.

    Answers whose question no longer resolves are left out of the results.
    """
    results: list[AnswerResult] = []
    correct = 0
    answers = session.get_answers()

    for qid in session.get_question_ids():
        answer = answers.get(qid)
        d = details.get(qid)
        if answer is None or d is None:
            continue

        selected = list(answer.selected_option_ids)
        correct_ids = d.correct_option_ids
        ok = is_answer_correct(selected, correct_ids)
        if ok:
            correct += 1

        results.append(
            AnswerResult(
                question_id=qid,
                question_text=d.text,
                selected_option_ids=selected,
                correct_option_ids=correct_ids,
                is_correct=ok,
                submitted_at=answer.answered_at,
                options=[
                    AnswerOptionResult(id=o.id, text=o.text, is_correct=o.is_correct, was_selected=o.id in selected)
                    for o in d.options
                ],
            )
        )

    return results, correct


def calculate_score_summary(
    correct_answers: int, total_questions: int, passing_percentage: int | None = None
) -> ScoreSummary:
    # Half up, so 12.5 reports as 13.
    percentage = (correct_answers * 200 + total_questions) // (2 * total_questions) if total_questions > 0 else 0
    passed = percentage >= passing_percentage if passing_percentage is not None else None
    return ScoreSummary(
        correct_answers=int(correct_answers),
        total_questions=int(total_questions),
        percentage=percentage,
        passed=passed,
        passing_percentage=passing_percentage,
    )

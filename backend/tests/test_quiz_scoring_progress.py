from datetime import datetime, timedelta, timezone

from app.domain.quiz.clock import FixedClock
from app.domain.quiz.config import QuizConfig
from app.domain.quiz.exam_types import ExamType
from app.domain.quiz.ids import OptionId, QuestionId, UserId
from app.domain.quiz.question_reference import QuestionReference
from app.domain.quiz.session import QuizSession
from app.models.user import User
from app.services.progress import apply_quiz_result, study_minutes_between
from app.services.question_catalog import OptionDetails, QuestionDetails
from app.services.scoring import build_answer_results, calculate_score_summary, is_answer_correct


T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


def _o(v: str) -> OptionId:
    return OptionId.of(v)


def test_is_answer_correct_uses_set_equality():
    assert is_answer_correct([_o("a"), _o("b")], [_o("b"), _o("a")])
    assert not is_answer_correct([_o("a")], [_o("a"), _o("b")])
    assert not is_answer_correct([_o("a"), _o("c")], [_o("a"), _o("b")])


def test_score_summary_rounds_half_up():
    s = calculate_score_summary(1, 8)
    assert s.percentage == 13
    assert s.passed is None and s.passing_percentage is None

    assert calculate_score_summary(2, 3).percentage == 67
    assert calculate_score_summary(0, 0).percentage == 0
    assert calculate_score_summary(7, 10, passing_percentage=70).passed is True
    assert calculate_score_summary(6, 10, passing_percentage=70).passed is False


def test_build_answer_results_in_question_order():
    clock = FixedClock(T0)
    qids = [QuestionId.of(f"q{i}") for i in range(3)]
    cfg = QuizConfig.create(exam_type=ExamType.CCNA, question_count=3, auto_complete_when_all_answered=False).unwrap()
    session = QuizSession.start_new(UserId.of("u1"), cfg, qids, clock).unwrap()

    details = {
        q: QuestionDetails(
            id=q,
            text=f"text {q}",
            explanation=None,
            options=(
                OptionDetails(id=_o(f"{q}-a"), text="A", is_correct=True),
                OptionDetails(id=_o(f"{q}-b"), text="B", is_correct=False),
            ),
        )
        for q in qids
    }

    def ref(q):
        return QuestionReference(q, [o.id for o in details[q].options])

    session.submit_answer(qids[2], [_o("q2-b")], ref(qids[2]), clock).unwrap()
    session.submit_answer(qids[0], [_o("q0-a")], ref(qids[0]), clock).unwrap()

    results, correct = build_answer_results(session, details)

    assert correct == 1
    assert [r.question_id for r in results] == [qids[0], qids[2]]
    assert results[0].is_correct and not results[1].is_correct
    assert results[1].correct_option_ids == [_o("q2-a")]
    assert [(o.id, o.was_selected) for o in results[1].options] == [(_o("q2-a"), False), (_o("q2-b"), True)]


def test_build_answer_results_skips_unknown_questions():
    clock = FixedClock(T0)
    q = QuestionId.of("q0")
    cfg = QuizConfig.create(exam_type=ExamType.CCNA, question_count=1).unwrap()
    session = QuizSession.start_new(UserId.of("u1"), cfg, [q], clock).unwrap()
    session.submit_answer(q, [_o("x")], QuestionReference(q, [_o("x")]), clock).unwrap()

    results, correct = build_answer_results(session, {})
    assert results == [] and correct == 0


def test_apply_quiz_result_awards_xp_and_levels():
    user = User(xp=95, level=1, streak=0, quizzes_completed=0, study_minutes=0, last_activity_at=None)

    update = apply_quiz_result(user, correct_answers=3, total_questions=5, study_minutes=12, now=T0)

    assert update.experience_gained == 30
    assert update.previous_level == 1
    assert update.new_level == 2
    assert user.xp == 125
    assert user.quizzes_completed == 1
    assert user.study_minutes == 12
    assert user.streak == 1
    assert user.last_activity_at == T0


def test_streak_rules():
    user = User(xp=0, level=1, streak=3, quizzes_completed=0, study_minutes=0, last_activity_at=T0 - timedelta(days=1))
    apply_quiz_result(user, correct_answers=0, total_questions=1, study_minutes=0, now=T0)
    assert user.streak == 4

    apply_quiz_result(user, correct_answers=0, total_questions=1, study_minutes=0, now=T0 + timedelta(hours=2))
    assert user.streak == 4

    apply_quiz_result(user, correct_answers=0, total_questions=1, study_minutes=0, now=T0 + timedelta(days=3))
    assert user.streak == 1


def test_study_minutes_round_up():
    assert study_minutes_between(T0, T0 + timedelta(seconds=61)) == 2
    assert study_minutes_between(T0, T0 + timedelta(minutes=5)) == 5
    assert study_minutes_between(T0, None) == 0

import app.routers.admin as admin_router_module
from app.domain.quiz.exam_types import ExamType
from app.models.quiz import QuestionStatus
from app.services.quiz_sessions import QuizSessionService

from conftest import seed_questions


def test_user_cannot_access_admin_endpoints(client, user_headers):
    r = client.get("/admin/quiz-stats", headers=user_headers)
    assert r.status_code == 403
    assert r.json()["error_code"] == "forbidden"

    r = client.get("/admin/jobs/abc", headers=user_headers)
    assert r.status_code == 403


def test_admin_endpoints_require_auth(client):
    assert client.get("/admin/quiz-stats").status_code == 401


def test_admin_quiz_stats(client, db, clock, admin_headers, user, other_user, questions):
    seed_questions(2, status=QuestionStatus.pending)

    service = QuizSessionService(db, clock=clock)
    service.start_quiz(user_id=str(user.id), exam_type=ExamType.CCNA, question_count=2)
    db.commit()
    session = service.start_quiz(user_id=str(other_user.id), exam_type=ExamType.CCNA, question_count=2)
    db.commit()
    clock.advance(minutes=1)
    service.complete_quiz(session_id=str(session.id), user_id=str(other_user.id))
    db.commit()

    r = client.get("/admin/quiz-stats", headers=admin_headers)
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["users"]["total"] == 3
    assert body["questions"] == {"total": 7, "pending": 2}
    assert body["quizzes"] == {"total": 2, "active_sessions": 1}
    assert body["system"]["total_experience"] == 0


def test_admin_job_status_missing(client, admin_headers, monkeypatch):
    monkeypatch.setattr(admin_router_module, "fetch_job", lambda job_id: None)

    r = client.get("/admin/jobs/abc", headers=admin_headers)
    assert r.status_code == 200
    body = r.json()
    assert body["id"] == "abc"
    assert body["status"] == "missing"


def test_expired_token_is_rejected(client, user):
    from conftest import create_access_token

    token = create_access_token(user_id=str(user.id), role=user.role.value, minutes=-1)
    r = client.get("/admin/quiz-stats", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401
    assert r.json()["error_code"] == "unauthorized"

"""
Quiz Tests

Grading against the answer key and the retake cooldown.
"""

from datetime import timedelta
from unittest.mock import patch

import pytest

from app.core.utils import utc_now
from app.services import quiz_service


ALL_CORRECT = {
    "q1": "409",
    "q2": "<nav>",
    "q3": "3",
    "q4": "padding",
    "q5": "object",
    "q6": "git switch -c",
    "q7": "a-b-c",
    "q8": "HAVING",
    "q9": "2,4,6",
    "q10": "PUT",
}


class TestGrading:

    def test_all_correct(self):
        assert quiz_service.grade(ALL_CORRECT, quiz_service.load_answer_key()) == (10, 10, 100)

    def test_missing_answers_score_zero(self):
        assert quiz_service.grade({}, quiz_service.load_answer_key()) == (0, 10, 0)

    def test_output_answers_are_trimmed(self):
        key = ({"id": "a", "type": "output", "correctAnswer": "42"},)

        assert quiz_service.grade({"a": "  42\n"}, key) == (1, 1, 100)

    def test_mcq_answers_must_match_exactly(self):
        key = ({"id": "a", "type": "mcq", "correctAnswer": "PUT"},)

        assert quiz_service.grade({"a": " PUT"}, key) == (0, 1, 0)

    def test_percentage_is_rounded(self):
        key = tuple({"id": f"q{i}", "type": "mcq", "correctAnswer": "x"} for i in range(3))

        assert quiz_service.grade({"q0": "x", "q1": "x"}, key) == (2, 3, 67)

    def test_half_percent_rounds_up(self):
        key = tuple({"id": f"q{i}", "type": "mcq", "correctAnswer": "x"} for i in range(8))

        assert quiz_service.grade({"q0": "x"}, key) == (1, 8, 13)
        assert quiz_service.grade({f"q{i}": "x" for i in range(3)}, key) == (3, 8, 38)
        assert quiz_service.grade({f"q{i}": "x" for i in range(5)}, key) == (5, 8, 63)

    def test_public_questions_hide_answers(self):
        questions = quiz_service.public_questions()

        assert len(questions) == 10
        dumped = [q.model_dump() for q in questions]
        assert all("correctAnswer" not in q and "correct_answer" not in q for q in dumped)


class TestQuizApi:

    @pytest.mark.asyncio
    async def test_questions_endpoint(self, client):
        response = await client.get("/api/v1/quiz/questions")

        assert response.status_code == 200
        assert {q["id"] for q in response.json()} == set(ALL_CORRECT)
        assert all("correctAnswer" not in q for q in response.json())

    @pytest.mark.asyncio
    async def test_passing_attempt_has_no_cooldown(self, client):
        response = await client.post(
            "/api/v1/quiz/submit", json={"email": "taker@example.com", "answers": ALL_CORRECT}
        )

        body = response.json()
        assert response.status_code == 200
        assert body["passed"] is True
        assert body["percentage"] == 100
        assert body.get("nextAllowedAttempt") is None

        again = await client.post(
            "/api/v1/quiz/submit", json={"email": "taker@example.com", "answers": {}}
        )
        assert again.status_code == 200

    @pytest.mark.asyncio
    async def test_failed_attempt_locks_retakes_for_ninety_days(self, client):
        failed = await client.post(
            "/api/v1/quiz/submit", json={"email": "Taker@Example.com", "answers": {"q1": "409"}}
        )
        body = failed.json()
        assert body["passed"] is False
        assert body["score"] == 1
        assert body["nextAllowedAttempt"] is not None

        locked = await client.post(
            "/api/v1/quiz/submit", json={"email": "taker@example.com", "answers": ALL_CORRECT}
        )
        assert locked.status_code == 403
        assert locked.json()["message"] == "Retake locked"
        assert "nextAllowedAttempt" in locked.json()

        later = utc_now() + timedelta(days=90, minutes=1)
        with patch("app.services.quiz_service.utc_now", return_value=later):
            retake = await client.post(
                "/api/v1/quiz/submit", json={"email": "taker@example.com", "answers": ALL_CORRECT}
            )
        assert retake.status_code == 200
        assert retake.json()["passed"] is True

    @pytest.mark.asyncio
    async def test_cooldown_is_per_email(self, client):
        await client.post("/api/v1/quiz/submit", json={"email": "one@example.com", "answers": {}})

        response = await client.post(
            "/api/v1/quiz/submit", json={"email": "two@example.com", "answers": {}}
        )

        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_submissions_are_rate_limited(self, client):
        statuses = [
            (await client.post(
                "/api/v1/quiz/submit", json={"email": f"t{i}@example.com", "answers": ALL_CORRECT}
            )).status_code
            for i in range(4)
        ]

        assert statuses == [200, 200, 200, 429]

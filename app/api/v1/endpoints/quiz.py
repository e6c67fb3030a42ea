"""
Quiz Routes

Public quiz with a retake cooldown after a failed attempt.
"""

from fastapi import APIRouter, BackgroundTasks, Request

from app.api.deps import DbSession
from app.middleware.rate_limit import quiz_limiter, rate_limit
from app.schemas.quiz import QuizQuestion, QuizResult, QuizSubmission
from app.services import quiz_service


router = APIRouter(prefix="/quiz", tags=["Quiz"])


@router.get(
    "/questions",
    response_model=list[QuizQuestion],
    summary="Get quiz questions (without answers)",
)
async def get_questions() -> list[QuizQuestion]:
    return quiz_service.public_questions()


@router.post(
    "/submit",
    response_model=QuizResult,
    summary="Submit quiz answers",
)
@rate_limit(quiz_limiter)
async def submit_quiz(
    request: Request,
    submission: QuizSubmission,
    db: DbSession,
    background_tasks: BackgroundTasks,
) -> QuizResult:
    """
    Grade a submission.

    Passing needs 50%. A failed attempt locks retakes for 90 days; a
    submission during the lock returns 403 with ``nextAllowedAttempt``.
    The result is also emailed to the taker.
    """
    attempt = await quiz_service.submit_quiz(db, submission.email, submission.answers, background_tasks)
    return QuizResult(
        attempt_id=attempt.id,
        score=attempt.score,
        total=attempt.total,
        percentage=attempt.percentage,
        passed=attempt.passed,
        next_allowed_attempt=attempt.next_allowed_attempt,
    )

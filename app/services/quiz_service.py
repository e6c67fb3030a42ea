"""
Quiz Service

Grades submissions against the static answer key and enforces the retake
cooldown after a failed attempt.
"""

import json
import logging
from datetime import datetime, timedelta
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

from fastapi import BackgroundTasks
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import Forbidden
from app.core.utils import as_utc, utc_now
from app.models.quiz_attempt import QuizAttempt
from app.schemas.quiz import QuizQuestion
from app.services import email_service, notification_service


logger = logging.getLogger(__name__)


@lru_cache
def load_answer_key(path: Optional[str] = None) -> tuple[dict[str, Any], ...]:
    """Load the quiz definition (questions with ``correctAnswer``)."""
    key_path = Path(path or settings.QUIZ_ANSWER_KEY_PATH)
    with key_path.open(encoding="utf-8") as f:
        questions = json.load(f)
    logger.info("Loaded %d quiz questions from %s", len(questions), key_path)
    return tuple(questions)


def public_questions(answer_key: Optional[tuple[dict[str, Any], ...]] = None) -> list[QuizQuestion]:
    """Questions with the answer key stripped."""
    answer_key = answer_key if answer_key is not None else load_answer_key()
    return [
        QuizQuestion(
            id=q["id"],
            type=q["type"],
            question=q["question"],
            code=q.get("code"),
            options=q.get("options", []),
        )
        for q in answer_key
    ]


def grade(answers: dict[str, str], answer_key: tuple[dict[str, Any], ...]) -> tuple[int, int, int]:
    """
    Score answers against the key.

    ``mcq`` answers must match exactly; ``output`` answers are compared
    with surrounding whitespace trimmed. Missing answers score zero.

    Returns:
        tuple: (score, total, percentage rounded half-up to an integer)
    """
    score = 0
    for question in answer_key:
        answer = answers.get(question["id"])
        if not answer:
            continue

        expected = str(question["correctAnswer"])
        if question["type"] == "mcq" and answer == expected:
            score += 1
        elif question["type"] == "output" and str(answer).strip() == expected.strip():
            score += 1

    total = len(answer_key)
    # Half-up in integer arithmetic, so 12.5% reports as 13
    percentage = (score * 200 + total) // (2 * total) if total else 0
    return score, total, percentage


async def get_latest_attempt(db: AsyncSession, email: str) -> Optional[QuizAttempt]:
    result = await db.execute(
        select(QuizAttempt)
        .where(QuizAttempt.email == email.lower())
        .order_by(QuizAttempt.attempted_at.desc(), QuizAttempt.id.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def submit_quiz(
    db: AsyncSession,
    email: str,
    answers: dict[str, str],
    background_tasks: BackgroundTasks,
    now: Optional[datetime] = None,
) -> QuizAttempt:
    """
    Grade and record an attempt.

    Raises:
        Forbidden: While the previous failed attempt's cooldown is active;
            the error carries ``nextAllowedAttempt``.
    """
    now = now or utc_now()
    email = email.lower()

    last_attempt = await get_latest_attempt(db, email)
    if last_attempt is not None:
        next_allowed = as_utc(last_attempt.next_allowed_attempt)
        if next_allowed is not None and next_allowed > now:
            raise Forbidden("Retake locked", nextAllowedAttempt=next_allowed.isoformat())

    score, total, percentage = grade(answers, load_answer_key())
    passed = percentage >= settings.QUIZ_PASS_PERCENTAGE

    attempt = QuizAttempt(
        email=email,
        answers=answers,
        score=score,
        total=total,
        percentage=percentage,
        passed=passed,
        attempted_at=now,
        next_allowed_attempt=None if passed else now + timedelta(days=settings.QUIZ_COOLDOWN_DAYS),
    )
    db.add(attempt)
    await db.commit()
    logger.info("Quiz attempt %s by %s: %d%% (%s)", attempt.id, email, percentage, "pass" if passed else "fail")

    notification_service.schedule_email(
        background_tasks,
        email_service.quiz_result_email(email, score, total, percentage, passed),
    )
    return attempt

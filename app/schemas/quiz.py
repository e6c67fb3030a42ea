"""
Quiz Schemas

Pydantic models for quiz questions and graded submissions.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import EmailStr, Field

from app.schemas.common import ApiModel


class QuizQuestion(ApiModel):
    """A question as shown to the taker (answer key stripped)."""

    id: str
    type: Literal["mcq", "output"]
    question: str
    code: Optional[str] = None
    options: list[str] = Field(default_factory=list)


class QuizSubmission(ApiModel):
    """Schema for quiz answer submission."""

    email: EmailStr = Field(..., description="Taker email")
    answers: dict[str, str] = Field(
        ...,
        description="Question ID to answer mapping (e.g., {'q1': 'Option A'})",
    )


class QuizResult(ApiModel):
    """Schema for quiz submission result."""

    attempt_id: int
    score: int
    total: int
    percentage: int
    passed: bool
    next_allowed_attempt: Optional[datetime] = None

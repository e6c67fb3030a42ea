"""
Post Schemas

Pydantic models for posts, comments, replies and like toggles.
"""

from datetime import datetime
from typing import Optional

from pydantic import Field

from app.schemas.account import AuthorSummary
from app.schemas.common import ApiModel, NonBlankStr


# ============== Post Schemas ==============

class PostCreate(ApiModel):
    """Schema for creating a post."""

    title: NonBlankStr = Field(..., max_length=255, description="Post title")
    body: str = Field(default="", description="Post body")
    images: list[str] = Field(default_factory=list, description="Image URLs")


class PostUpdate(ApiModel):
    """Schema for editing a post; omitted fields are left unchanged."""

    title: Optional[NonBlankStr] = Field(None, max_length=255)
    body: Optional[str] = None
    images: Optional[list[str]] = None


class PostResponse(ApiModel):
    id: int
    title: str
    body: str
    images: list[str]
    author: AuthorSummary
    like_count: int = 0
    liked_by_me: bool = False
    comment_count: int = 0
    created_at: datetime
    updated_at: datetime


# ============== Comment Schemas ==============

class CommentCreate(ApiModel):
    text: NonBlankStr
    media: list[str] = Field(default_factory=list)


class CommentUpdate(ApiModel):
    text: NonBlankStr


class ReplyCreate(ApiModel):
    text: NonBlankStr


class ReplyResponse(ApiModel):
    id: int
    comment_id: int
    author: AuthorSummary
    text: str
    edited: bool
    like_count: int = 0
    liked_by_me: bool = False
    created_at: datetime
    updated_at: datetime


class CommentResponse(ApiModel):
    id: int
    post_id: int
    author: AuthorSummary
    text: str
    media: list[str]
    edited: bool
    like_count: int = 0
    liked_by_me: bool = False
    reply_count: int = 0
    created_at: datetime
    updated_at: datetime


class CommentWithReplies(CommentResponse):
    replies: list[ReplyResponse] = Field(default_factory=list)


class PostDetail(PostResponse):
    """A post with its comments and their replies."""

    comments: list[CommentWithReplies] = Field(default_factory=list)


class LikeToggleResponse(ApiModel):
    """New membership state and resulting like count."""

    liked: bool
    count: int

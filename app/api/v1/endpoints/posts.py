"""
Post Routes

Posts, comments, replies and likes. Reading is public; writing requires
a session, and edits are limited to the author or an admin.
"""

from typing import Annotated

from fastapi import APIRouter, Query, status

from app.api.deps import CurrentUser, DbSession, OptionalUser
from app.models.enums import LikeTarget
from app.schemas.common import MessageResponse, Page
from app.schemas.post import (
    CommentCreate,
    CommentResponse,
    CommentUpdate,
    LikeToggleResponse,
    PostCreate,
    PostDetail,
    PostResponse,
    PostUpdate,
    ReplyCreate,
    ReplyResponse,
)
from app.services import post_service


router = APIRouter(prefix="/posts", tags=["Posts"])

MAX_PAGE_SIZE = 100
MAX_REPLY_PAGE_SIZE = 50


# ============== Posts ==============

@router.post("", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_post(data: PostCreate, current_user: CurrentUser, db: DbSession) -> PostResponse:
    return await post_service.create_post(db, current_user, data)


@router.get("", response_model=Page[PostResponse])
async def list_posts(
    db: DbSession,
    viewer: OptionalUser,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=MAX_PAGE_SIZE)] = 20,
) -> Page[PostResponse]:
    """Newest posts first."""
    items, total = await post_service.list_posts(db, viewer, page, limit)
    return Page[PostResponse].build(items, total, page, limit)


@router.get("/{post_id}", response_model=PostDetail)
async def get_post(post_id: int, db: DbSession, viewer: OptionalUser) -> PostDetail:
    """A post with its comments and their replies."""
    return await post_service.get_post_detail(db, post_id, viewer)


@router.put("/{post_id}", response_model=PostResponse)
async def update_post(
    post_id: int,
    data: PostUpdate,
    current_user: CurrentUser,
    db: DbSession,
) -> PostResponse:
    return await post_service.update_post(db, post_id, current_user, data)


@router.delete("/{post_id}", response_model=MessageResponse)
async def delete_post(post_id: int, current_user: CurrentUser, db: DbSession) -> MessageResponse:
    await post_service.delete_post(db, post_id, current_user)
    return MessageResponse(message="Deleted")


@router.post("/{post_id}/toggle-like", response_model=LikeToggleResponse)
async def toggle_post_like(post_id: int, current_user: CurrentUser, db: DbSession) -> LikeToggleResponse:
    post = await post_service.get_post(db, post_id)
    liked, count = await post_service.toggle_like(db, LikeTarget.POST, post.id, current_user)
    return LikeToggleResponse(liked=liked, count=count)


# ============== Comments ==============

@router.post(
    "/{post_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_comment(
    post_id: int,
    data: CommentCreate,
    current_user: CurrentUser,
    db: DbSession,
) -> CommentResponse:
    return await post_service.add_comment(db, post_id, current_user, data)


@router.put("/{post_id}/comments/{comment_id}", response_model=CommentResponse)
async def update_comment(
    post_id: int,
    comment_id: int,
    data: CommentUpdate,
    current_user: CurrentUser,
    db: DbSession,
) -> CommentResponse:
    return await post_service.update_comment(db, post_id, comment_id, current_user, data.text)


@router.delete("/{post_id}/comments/{comment_id}", response_model=MessageResponse)
async def delete_comment(
    post_id: int,
    comment_id: int,
    current_user: CurrentUser,
    db: DbSession,
) -> MessageResponse:
    await post_service.delete_comment(db, post_id, comment_id, current_user)
    return MessageResponse(message="Deleted")


@router.post("/{post_id}/comments/{comment_id}/like", response_model=LikeToggleResponse)
async def toggle_comment_like(
    post_id: int,
    comment_id: int,
    current_user: CurrentUser,
    db: DbSession,
) -> LikeToggleResponse:
    comment = await post_service.get_comment(db, post_id, comment_id)
    liked, count = await post_service.toggle_like(db, LikeTarget.COMMENT, comment.id, current_user)
    return LikeToggleResponse(liked=liked, count=count)


# ============== Replies ==============

@router.post(
    "/{post_id}/comments/{comment_id}/replies",
    response_model=ReplyResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_reply(
    post_id: int,
    comment_id: int,
    data: ReplyCreate,
    current_user: CurrentUser,
    db: DbSession,
) -> ReplyResponse:
    return await post_service.add_reply(db, post_id, comment_id, current_user, data.text)


@router.get("/{post_id}/comments/{comment_id}/replies", response_model=Page[ReplyResponse])
async def list_replies(
    post_id: int,
    comment_id: int,
    db: DbSession,
    viewer: OptionalUser,
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int, Query(alias="pageSize", ge=1)] = 5,
) -> Page[ReplyResponse]:
    """Oldest replies first; ``pageSize`` is capped at 50."""
    page_size = min(page_size, MAX_REPLY_PAGE_SIZE)
    items, total = await post_service.list_replies(db, post_id, comment_id, viewer, page, page_size)
    return Page[ReplyResponse].build(items, total, page, page_size)


@router.put("/{post_id}/comments/{comment_id}/replies/{reply_id}", response_model=ReplyResponse)
async def update_reply(
    post_id: int,
    comment_id: int,
    reply_id: int,
    data: ReplyCreate,
    current_user: CurrentUser,
    db: DbSession,
) -> ReplyResponse:
    return await post_service.update_reply(db, post_id, comment_id, reply_id, current_user, data.text)


@router.delete("/{post_id}/comments/{comment_id}/replies/{reply_id}", response_model=MessageResponse)
async def delete_reply(
    post_id: int,
    comment_id: int,
    reply_id: int,
    current_user: CurrentUser,
    db: DbSession,
) -> MessageResponse:
    await post_service.delete_reply(db, post_id, comment_id, reply_id, current_user)
    return MessageResponse(message="Deleted")


@router.post(
    "/{post_id}/comments/{comment_id}/replies/{reply_id}/like",
    response_model=LikeToggleResponse,
)
async def toggle_reply_like(
    post_id: int,
    comment_id: int,
    reply_id: int,
    current_user: CurrentUser,
    db: DbSession,
) -> LikeToggleResponse:
    reply = await post_service.get_reply(db, post_id, comment_id, reply_id)
    liked, count = await post_service.toggle_like(db, LikeTarget.REPLY, reply.id, current_user)
    return LikeToggleResponse(liked=liked, count=count)

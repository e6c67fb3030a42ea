"""
Post Service

Posts, comments, one level of replies, and like toggling.

Likes for all three target kinds live in one table whose unique
constraint on (target_type, target_id, account_id) gives set semantics.
"""

import logging
import uuid
from typing import Iterable, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import Forbidden, NotFound
from app.core.utils import utc_now
from app.models.account import Account
from app.models.enums import LikeTarget
from app.models.post import Comment, CommentReply, Like, Post
from app.schemas.account import AuthorSummary
from app.schemas.post import (
    CommentCreate,
    CommentResponse,
    CommentWithReplies,
    PostCreate,
    PostDetail,
    PostResponse,
    PostUpdate,
    ReplyResponse,
)


logger = logging.getLogger(__name__)


def _can_moderate(actor: Account, *owner_ids: uuid.UUID) -> bool:
    return actor.is_admin or actor.id in owner_ids


# ============== Likes ==============

async def _like_stats(
    db: AsyncSession,
    target_type: LikeTarget,
    target_ids: Iterable[int],
    viewer: Optional[Account],
) -> tuple[dict[int, int], set[int]]:
    """Like counts per target, and the targets the viewer has liked."""
    ids = list(target_ids)
    if not ids:
        return {}, set()

    result = await db.execute(
        select(Like.target_id, func.count(Like.id))
        .where(Like.target_type == target_type, Like.target_id.in_(ids))
        .group_by(Like.target_id)
    )
    counts = {target_id: count for target_id, count in result.all()}

    liked: set[int] = set()
    if viewer is not None:
        result = await db.execute(
            select(Like.target_id).where(
                Like.target_type == target_type,
                Like.target_id.in_(ids),
                Like.account_id == viewer.id,
            )
        )
        liked = set(result.scalars().all())

    return counts, liked


async def _count_likes(db: AsyncSession, target_type: LikeTarget, target_id: int) -> int:
    result = await db.execute(
        select(func.count(Like.id)).where(
            Like.target_type == target_type,
            Like.target_id == target_id,
        )
    )
    return result.scalar_one()


async def toggle_like(
    db: AsyncSession,
    target_type: LikeTarget,
    target_id: int,
    account: Account,
) -> tuple[bool, int]:
    """
    Flip the account's membership in the target's like set.

    Returns:
        tuple: (liked after the toggle, resulting like count)
    """
    result = await db.execute(
        select(Like).where(
            Like.target_type == target_type,
            Like.target_id == target_id,
            Like.account_id == account.id,
        )
    )
    existing = result.scalar_one_or_none()

    if existing is not None:
        await db.delete(existing)
        liked = False
    else:
        db.add(Like(target_type=target_type, target_id=target_id, account_id=account.id))
        liked = True

    try:
        await db.commit()
    except IntegrityError:
        # A concurrent toggle inserted the same like first
        await db.rollback()
        liked = True

    return liked, await _count_likes(db, target_type, target_id)


async def _delete_likes(db: AsyncSession, target_type: LikeTarget, target_ids: list[int]) -> None:
    if target_ids:
        await db.execute(
            delete(Like).where(Like.target_type == target_type, Like.target_id.in_(target_ids))
        )


# ============== Serialization ==============

def _reply_response(reply: CommentReply, counts: dict[int, int], liked: set[int]) -> ReplyResponse:
    return ReplyResponse(
        id=reply.id,
        comment_id=reply.comment_id,
        author=AuthorSummary.model_validate(reply.author),
        text=reply.text,
        edited=reply.edited,
        like_count=counts.get(reply.id, 0),
        liked_by_me=reply.id in liked,
        created_at=reply.created_at,
        updated_at=reply.updated_at,
    )


def _comment_fields(comment: Comment, counts: dict[int, int], liked: set[int]) -> dict:
    return dict(
        id=comment.id,
        post_id=comment.post_id,
        author=AuthorSummary.model_validate(comment.author),
        text=comment.text,
        media=comment.media or [],
        edited=comment.edited,
        like_count=counts.get(comment.id, 0),
        liked_by_me=comment.id in liked,
        reply_count=len(comment.replies),
        created_at=comment.created_at,
        updated_at=comment.updated_at,
    )


def _post_fields(post: Post, counts: dict[int, int], liked: set[int], comment_count: int) -> dict:
    return dict(
        id=post.id,
        title=post.title,
        body=post.body,
        images=post.images or [],
        author=AuthorSummary.model_validate(post.author),
        like_count=counts.get(post.id, 0),
        liked_by_me=post.id in liked,
        comment_count=comment_count,
        created_at=post.created_at,
        updated_at=post.updated_at,
    )


async def _post_response(db: AsyncSession, post: Post, viewer: Optional[Account]) -> PostResponse:
    counts, liked = await _like_stats(db, LikeTarget.POST, [post.id], viewer)
    comment_count = (
        await db.execute(select(func.count(Comment.id)).where(Comment.post_id == post.id))
    ).scalar_one()
    return PostResponse(**_post_fields(post, counts, liked, comment_count))


# ============== Posts ==============

async def get_post(db: AsyncSession, post_id: int) -> Post:
    result = await db.execute(select(Post).where(Post.id == post_id))
    post = result.scalar_one_or_none()
    if post is None:
        raise NotFound("Post not found")
    return post


async def create_post(db: AsyncSession, author: Account, data: PostCreate) -> PostResponse:
    post = Post(title=data.title, body=data.body, images=data.images)
    post.author = author
    db.add(post)
    await db.commit()
    logger.info("Post %s created by %s", post.id, author.id)
    return await _post_response(db, post, author)


async def list_posts(
    db: AsyncSession,
    viewer: Optional[Account],
    page: int = 1,
    limit: int = 20,
) -> tuple[list[PostResponse], int]:
    """Newest-first page of posts with like and comment counts."""
    total = (await db.execute(select(func.count(Post.id)))).scalar_one()

    result = await db.execute(
        select(Post)
        .order_by(Post.created_at.desc(), Post.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    posts = list(result.scalars().all())
    post_ids = [p.id for p in posts]

    counts, liked = await _like_stats(db, LikeTarget.POST, post_ids, viewer)
    comment_counts: dict[int, int] = {}
    if post_ids:
        rows = await db.execute(
            select(Comment.post_id, func.count(Comment.id))
            .where(Comment.post_id.in_(post_ids))
            .group_by(Comment.post_id)
        )
        comment_counts = {post_id: count for post_id, count in rows.all()}

    items = [
        PostResponse(**_post_fields(p, counts, liked, comment_counts.get(p.id, 0)))
        for p in posts
    ]
    return items, total


async def get_post_detail(db: AsyncSession, post_id: int, viewer: Optional[Account]) -> PostDetail:
    """A post with all comments (oldest first) and their replies."""
    post = await get_post(db, post_id)

    result = await db.execute(
        select(Comment).where(Comment.post_id == post.id).order_by(Comment.id)
    )
    comments = list(result.scalars().all())
    replies = [r for c in comments for r in c.replies]

    post_counts, post_liked = await _like_stats(db, LikeTarget.POST, [post.id], viewer)
    c_counts, c_liked = await _like_stats(db, LikeTarget.COMMENT, [c.id for c in comments], viewer)
    r_counts, r_liked = await _like_stats(db, LikeTarget.REPLY, [r.id for r in replies], viewer)

    return PostDetail(
        **_post_fields(post, post_counts, post_liked, len(comments)),
        comments=[
            CommentWithReplies(
                **_comment_fields(c, c_counts, c_liked),
                replies=[_reply_response(r, r_counts, r_liked) for r in c.replies],
            )
            for c in comments
        ],
    )


async def update_post(db: AsyncSession, post_id: int, actor: Account, data: PostUpdate) -> PostResponse:
    post = await get_post(db, post_id)
    if not _can_moderate(actor, post.author_id):
        raise Forbidden("Only the author can edit this post")

    for field, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(post, field, value)
    post.updated_at = utc_now()

    await db.commit()
    return await _post_response(db, post, actor)


async def delete_post(db: AsyncSession, post_id: int, actor: Account) -> None:
    post = await get_post(db, post_id)
    if not _can_moderate(actor, post.author_id):
        raise Forbidden("Only the author can delete this post")

    comment_ids = list(
        (await db.execute(select(Comment.id).where(Comment.post_id == post.id))).scalars().all()
    )
    reply_ids: list[int] = []
    if comment_ids:
        reply_ids = list(
            (
                await db.execute(
                    select(CommentReply.id).where(CommentReply.comment_id.in_(comment_ids))
                )
            ).scalars().all()
        )

    await _delete_likes(db, LikeTarget.REPLY, reply_ids)
    await _delete_likes(db, LikeTarget.COMMENT, comment_ids)
    await _delete_likes(db, LikeTarget.POST, [post.id])
    if reply_ids:
        await db.execute(delete(CommentReply).where(CommentReply.id.in_(reply_ids)))
    if comment_ids:
        await db.execute(delete(Comment).where(Comment.id.in_(comment_ids)))
    await db.delete(post)
    await db.commit()
    logger.info("Post %s deleted by %s", post_id, actor.id)


# ============== Comments ==============

async def get_comment(db: AsyncSession, post_id: int, comment_id: int) -> Comment:
    result = await db.execute(
        select(Comment).where(Comment.id == comment_id, Comment.post_id == post_id)
    )
    comment = result.scalar_one_or_none()
    if comment is None:
        raise NotFound("Comment not found")
    return comment


async def _comment_response(db: AsyncSession, comment: Comment, viewer: Optional[Account]) -> CommentResponse:
    counts, liked = await _like_stats(db, LikeTarget.COMMENT, [comment.id], viewer)
    return CommentResponse(**_comment_fields(comment, counts, liked))


async def add_comment(db: AsyncSession, post_id: int, author: Account, data: CommentCreate) -> CommentResponse:
    post = await get_post(db, post_id)
    comment = Comment(post_id=post.id, text=data.text, media=data.media, replies=[])
    comment.author = author
    db.add(comment)
    await db.commit()
    return await _comment_response(db, comment, author)


async def update_comment(
    db: AsyncSession,
    post_id: int,
    comment_id: int,
    actor: Account,
    text: str,
) -> CommentResponse:
    comment = await get_comment(db, post_id, comment_id)
    if not _can_moderate(actor, comment.author_id):
        raise Forbidden("Only the author can edit this comment")

    comment.text = text
    comment.edited = True
    comment.updated_at = utc_now()
    await db.commit()
    return await _comment_response(db, comment, actor)


async def delete_comment(db: AsyncSession, post_id: int, comment_id: int, actor: Account) -> None:
    """Comment author, post author or an admin may delete a comment."""
    post = await get_post(db, post_id)
    comment = await get_comment(db, post_id, comment_id)
    if not _can_moderate(actor, comment.author_id, post.author_id):
        raise Forbidden("Not allowed to delete this comment")

    await _delete_likes(db, LikeTarget.REPLY, [r.id for r in comment.replies])
    await _delete_likes(db, LikeTarget.COMMENT, [comment.id])
    await db.delete(comment)
    await db.commit()


# ============== Replies ==============

async def get_reply(db: AsyncSession, post_id: int, comment_id: int, reply_id: int) -> CommentReply:
    await get_comment(db, post_id, comment_id)
    result = await db.execute(
        select(CommentReply).where(
            CommentReply.id == reply_id,
            CommentReply.comment_id == comment_id,
        )
    )
    reply = result.scalar_one_or_none()
    if reply is None:
        raise NotFound("Reply not found")
    return reply


async def _single_reply_response(db: AsyncSession, reply: CommentReply, viewer: Optional[Account]) -> ReplyResponse:
    counts, liked = await _like_stats(db, LikeTarget.REPLY, [reply.id], viewer)
    return _reply_response(reply, counts, liked)


async def add_reply(
    db: AsyncSession,
    post_id: int,
    comment_id: int,
    author: Account,
    text: str,
) -> ReplyResponse:
    comment = await get_comment(db, post_id, comment_id)
    reply = CommentReply(comment_id=comment.id, text=text)
    reply.author = author
    db.add(reply)
    await db.commit()
    return await _single_reply_response(db, reply, author)


async def list_replies(
    db: AsyncSession,
    post_id: int,
    comment_id: int,
    viewer: Optional[Account],
    page: int = 1,
    page_size: int = 5,
) -> tuple[list[ReplyResponse], int]:
    """Oldest-first page of replies to a comment."""
    comment = await get_comment(db, post_id, comment_id)
    total = (
        await db.execute(
            select(func.count(CommentReply.id)).where(CommentReply.comment_id == comment.id)
        )
    ).scalar_one()

    result = await db.execute(
        select(CommentReply)
        .where(CommentReply.comment_id == comment.id)
        .order_by(CommentReply.id)
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    replies = list(result.scalars().all())
    counts, liked = await _like_stats(db, LikeTarget.REPLY, [r.id for r in replies], viewer)
    return [_reply_response(r, counts, liked) for r in replies], total


async def update_reply(
    db: AsyncSession,
    post_id: int,
    comment_id: int,
    reply_id: int,
    actor: Account,
    text: str,
) -> ReplyResponse:
    reply = await get_reply(db, post_id, comment_id, reply_id)
    if not _can_moderate(actor, reply.author_id):
        raise Forbidden("Only the author can edit this reply")

    reply.text = text
    reply.edited = True
    reply.updated_at = utc_now()
    await db.commit()
    return await _single_reply_response(db, reply, actor)


async def delete_reply(
    db: AsyncSession,
    post_id: int,
    comment_id: int,
    reply_id: int,
    actor: Account,
) -> None:
    """Reply author, post author or an admin may delete a reply."""
    post = await get_post(db, post_id)
    reply = await get_reply(db, post_id, comment_id, reply_id)
    if not _can_moderate(actor, reply.author_id, post.author_id):
        raise Forbidden("Not allowed to delete this reply")

    await _delete_likes(db, LikeTarget.REPLY, [reply.id])
    await db.delete(reply)
    await db.commit()

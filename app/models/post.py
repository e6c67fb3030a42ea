"""
Post Models

Community posts with comments, one level of replies and likes.
"""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base
from app.core.utils import utc_now
from app.models.enums import LikeTarget, enum_values

if TYPE_CHECKING:
    from app.models.account import Account


class Post(Base):
    """
    Post model.

    Attributes:
        id: Integer primary key.
        author_id: Foreign key to the author account.
        title: Post title.
        body: Post body.
        images: List of image URLs.
    """

    __tablename__ = "posts"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    author_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("accounts.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    title: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    body: Mapped[str] = mapped_column(
        Text,
        default="",
        nullable=False,
    )
    images: Mapped[list] = mapped_column(
        JSON,
        default=list,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        index=True,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        onupdate=utc_now,
        nullable=False,
    )

    # Relationships
    author: Mapped["Account"] = relationship(
        "Account",
        lazy="selectin",
    )
    comments: Mapped[list["Comment"]] = relationship(
        "Comment",
        back_populates="post",
        order_by="Comment.id",
        lazy="noload",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Post(id={self.id}, title={self.title})>"


class Comment(Base):
    """A comment on a post."""

    __tablename__ = "comments"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    post_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("posts.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    author_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("accounts.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    text: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    media: Mapped[list] = mapped_column(
        JSON,
        default=list,
        nullable=False,
    )
    edited: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        onupdate=utc_now,
        nullable=False,
    )

    post: Mapped["Post"] = relationship(
        "Post",
        back_populates="comments",
    )
    author: Mapped["Account"] = relationship(
        "Account",
        lazy="selectin",
    )
    replies: Mapped[list["CommentReply"]] = relationship(
        "CommentReply",
        back_populates="comment",
        order_by="CommentReply.id",
        lazy="selectin",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Comment(id={self.id}, post_id={self.post_id})>"


class CommentReply(Base):
    """A reply to a comment (one level deep)."""

    __tablename__ = "comment_replies"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    comment_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("comments.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    author_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
    )
    text: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    edited: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        onupdate=utc_now,
        nullable=False,
    )

    comment: Mapped["Comment"] = relationship(
        "Comment",
        back_populates="replies",
    )
    author: Mapped["Account"] = relationship(
        "Account",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<CommentReply(id={self.id}, comment_id={self.comment_id})>"


class Like(Base):
    """
    Like membership.

    The unique constraint makes each (target, account) pair a set member,
    so concurrent toggles can never produce duplicates.
    """

    __tablename__ = "likes"

    __table_args__ = (
        UniqueConstraint("target_type", "target_id", "account_id", name="uq_like_target_account"),
    )

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    target_type: Mapped[LikeTarget] = mapped_column(
        Enum(LikeTarget, name="like_target", create_constraint=True, values_callable=enum_values),
        nullable=False,
    )
    target_id: Mapped[int] = mapped_column(
        Integer,
        index=True,
        nullable=False,
    )
    account_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Like({self.target_type}:{self.target_id} by {self.account_id})>"

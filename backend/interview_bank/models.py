"""SQLModel data models.

This module defines the application's database tables using SQLModel.
Each class maps to a table and uses relationships where appropriate.
"""

import enum
from typing import List, Optional
from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import UniqueConstraint
from datetime import datetime, timezone


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Difficulty(str, enum.Enum):
    """Question difficulty levels, easiest first."""
    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"

    @classmethod
    def parse(cls, value: str) -> "Difficulty":
        """Resolve a difficulty name case-insensitively.

        Raises ValueError when `value` names no difficulty.
        """
        needle = (value or "").strip().lower()
        for member in cls:
            if member.value.lower() == needle:
                return member
        raise ValueError(f"unknown difficulty: {value}")


class User(SQLModel, table=True):
    """A registered user.

    Fields:
    - `username`: unique login name
    - `password_hash`: hashed password string (never store plaintext)
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(index=True, nullable=False, unique=True)
    password_hash: str
    created_at: datetime = Field(default_factory=_utcnow)


class Category(SQLModel, table=True):
    """A topic grouping for questions.

    `range_start`/`range_end` describe the block of question numbers the
    category owns; imports use it to place numbered questions.
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=100, index=True, unique=True)
    description: Optional[str] = Field(default=None, max_length=500)
    icon: Optional[str] = Field(default=None, max_length=50)
    color_code: Optional[str] = Field(default=None, max_length=50)
    display_order: int = 0
    range_start: int = 0
    range_end: int = 0
    questions: List['Question'] = Relationship(back_populates='category')


class Question(SQLModel, table=True):
    """A markdown interview question belonging to exactly one category."""
    id: Optional[int] = Field(default=None, primary_key=True)
    question_number: int = Field(index=True)
    title: str = Field(max_length=500)
    content: str
    difficulty: Difficulty = Field(default=Difficulty.INTERMEDIATE, index=True)
    tags: Optional[str] = Field(default=None, max_length=200)
    category_id: int = Field(foreign_key='category.id', index=True)
    is_published: bool = True
    view_count: int = 0
    created_at: datetime = Field(default_factory=_utcnow)
    modified_at: Optional[datetime] = None
    category: Optional[Category] = Relationship(back_populates='questions')


class Favorite(SQLModel, table=True):
    """A user's saved-question marker, unique per user/question pair."""
    __table_args__ = (UniqueConstraint('user_id', 'question_id', name='uq_favorite_user_question'),)

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key='user.id', index=True)
    question_id: int = Field(foreign_key='question.id', index=True)
    added_at: datetime = Field(default_factory=_utcnow)
    question: Optional[Question] = Relationship()


class ProgressRecord(SQLModel, table=True):
    """A completion marker; created once per user/question and never deleted."""
    __table_args__ = (UniqueConstraint('user_id', 'question_id', name='uq_progress_user_question'),)

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key='user.id', index=True)
    question_id: int = Field(foreign_key='question.id', index=True)
    completed_at: datetime = Field(default_factory=_utcnow)
    question: Optional[Question] = Relationship()

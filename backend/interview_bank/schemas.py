"""Pydantic request/response schemas used by the API.

Schemas keep API input/output shapes stable and provide validation for
controller handlers and tests.
"""

from pydantic import BaseModel, Field
from typing import Optional


class RegisterIn(BaseModel):
    """Payload for user registration/login endpoints."""
    username: str
    password: str


class TokenOut(BaseModel):
    """Authentication response containing an access token."""
    access_token: str


class QuestionFilter(BaseModel):
    """Optional catalog filters; every provided field must match."""
    category_id: Optional[int] = None
    difficulty: Optional[str] = None
    search_text: Optional[str] = None


class QuestionCreate(BaseModel):
    """Request format for creating a single question.

    Either `category_id` or `new_category_name` must be supplied. A missing
    `question_number` is assigned after the highest number in the category.
    """
    title: str = Field(max_length=500)
    content: str
    category_id: Optional[int] = None
    new_category_name: Optional[str] = Field(default=None, max_length=100)
    new_category_icon: Optional[str] = None
    new_category_color: Optional[str] = None
    question_number: Optional[int] = None
    difficulty: Optional[str] = None
    tags: Optional[str] = Field(default=None, max_length=200)


class PublishIn(BaseModel):
    """Publication flag update."""
    is_published: bool

from pathlib import Path
import os
import tempfile

# point the app at a throwaway SQLite file before the package reads its settings
_DB_DIR = Path(tempfile.mkdtemp(prefix="interview_bank_tests_"))
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_DIR / 'test.db'}"
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from sqlmodel import SQLModel, Session

from interview_bank import models
from interview_bank.database import engine, create_db_and_tables


@pytest.fixture(autouse=True)
def reset_db():
    """Rebuild and reseed the tables so every test starts from the 7 seeded categories."""
    SQLModel.metadata.drop_all(engine)
    create_db_and_tables()
    yield


@pytest.fixture
def session():
    with Session(engine) as s:
        yield s


@pytest.fixture
def make_question(session):
    """Factory persisting a question with sensible defaults."""
    def _make(number, title=None, content="Answer body.", category_id=1,
              difficulty=models.Difficulty.INTERMEDIATE, is_published=True):
        q = models.Question(
            question_number=number,
            title=title or f"Question {number}",
            content=content,
            category_id=category_id,
            difficulty=difficulty,
            is_published=is_published,
        )
        session.add(q)
        session.commit()
        session.refresh(q)
        return q
    return _make


@pytest.fixture
def make_user(session):
    def _make(username):
        u = models.User(username=username, password_hash="x")
        session.add(u)
        session.commit()
        session.refresh(u)
        return u
    return _make

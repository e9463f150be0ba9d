"""Repository classes encapsulating database operations.

Each repository is small and focused on a single aggregate (users,
categories, questions, favorites, progress). Repositories return SQLModel
objects and perform commits/refreshes where appropriate.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple
from sqlmodel import Session, select
from sqlalchemy import String, cast, func, or_, update
from . import models

# SQLite INTEGER (and BIGINT elsewhere) cannot bind anything larger
MAX_SQL_INT = 2**63 - 1


def _valid_id(value: Optional[int]) -> bool:
    return value is not None and 0 < value <= MAX_SQL_INT


class UserRepository:
    """CRUD operations for `User` objects."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, user: models.User) -> models.User:
        """Persist a new user and return the managed instance."""
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user

    def get_by_username(self, username: str) -> Optional[models.User]:
        """Return a `User` by username or `None` if not found."""
        stmt = select(models.User).where(models.User.username == username)
        return self.session.exec(stmt).first()

    def get(self, user_id: int) -> Optional[models.User]:
        """Get a `User` by primary key."""
        if not _valid_id(user_id):
            return None
        return self.session.get(models.User, user_id)


class CategoryRepository:
    """Lookups and creation for `Category` rows."""
    def __init__(self, session: Session):
        self.session = session

    def get(self, category_id: int) -> Optional[models.Category]:
        if not _valid_id(category_id):
            return None
        return self.session.get(models.Category, category_id)

    def get_by_name(self, name: str) -> Optional[models.Category]:
        """Case-insensitive lookup by category name."""
        stmt = select(models.Category).where(func.lower(models.Category.name) == name.strip().lower())
        return self.session.exec(stmt).first()

    def list_ordered(self) -> List[models.Category]:
        """All categories by display rank."""
        stmt = select(models.Category).order_by(models.Category.display_order, models.Category.id)
        return self.session.exec(stmt).all()

    def find_for_number(self, question_number: int) -> Optional[models.Category]:
        """Return the category whose number range contains `question_number`."""
        stmt = select(models.Category).where(
            models.Category.range_start <= question_number,
            models.Category.range_end >= question_number,
        ).order_by(models.Category.display_order)
        return self.session.exec(stmt).first()

    def max_display_order_and_range_end(self) -> Tuple[int, int]:
        row = self.session.exec(
            select(func.max(models.Category.display_order), func.max(models.Category.range_end))
        ).one()
        return row[0] or 0, row[1] or 0

    def create(self, category: models.Category) -> models.Category:
        self.session.add(category)
        self.session.commit()
        self.session.refresh(category)
        return category

    def published_counts(self) -> Dict[int, int]:
        """Map category id to its number of published questions."""
        stmt = select(models.Question.category_id, func.count(models.Question.id)).where(
            models.Question.is_published == True  # noqa: E712
        ).group_by(models.Question.category_id)
        return {cid: n for cid, n in self.session.exec(stmt).all()}

    def question_counts(self) -> List[Tuple[str, int]]:
        """(category name, question count) for every category, by display rank."""
        stmt = select(models.Category.name, func.count(models.Question.id)).join(
            models.Question, models.Question.category_id == models.Category.id, isouter=True
        ).group_by(models.Category.id).order_by(models.Category.display_order, models.Category.id)
        return [(name, n) for name, n in self.session.exec(stmt).all()]


class QuestionRepository:
    """Queries and mutations for `Question` records."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, question: models.Question) -> models.Question:
        """Persist a single question and return it refreshed."""
        self.session.add(question)
        self.session.commit()
        self.session.refresh(question)
        return question

    def create_many(self, questions: List[models.Question]) -> None:
        """Persist a batch of questions in one commit."""
        for q in questions:
            self.session.add(q)
        self.session.commit()

    def get(self, question_id: int) -> Optional[models.Question]:
        """Fetch a question by id; ids outside the storable range match nothing."""
        if not _valid_id(question_id):
            return None
        return self.session.get(models.Question, question_id)

    def exists_by_number(self, question_number: int) -> bool:
        """Return True if any question already uses `question_number`."""
        stmt = select(models.Question.id).where(models.Question.question_number == question_number)
        return self.session.exec(stmt).first() is not None

    def max_number_in_category(self, category_id: int) -> int:
        stmt = select(func.max(models.Question.question_number)).where(models.Question.category_id == category_id)
        return self.session.exec(stmt).one() or 0

    def search(self, category_id: Optional[int] = None, difficulty: Optional[models.Difficulty] = None,
               search_text: Optional[str] = None, offset: int = 0, limit: int = 15,
               published_only: bool = True) -> Tuple[List[models.Question], int]:
        """Return one page of matching questions and the total match count.

        All provided predicates are combined with AND. Text matches
        title, content or the question number, ignoring case. Results are
        ordered by question number then id so pages stay stable. An offset
        at or past the total returns an empty page without querying it.
        """
        if category_id is not None and not _valid_id(category_id):
            return [], 0
        conditions = []
        if published_only:
            conditions.append(models.Question.is_published == True)  # noqa: E712
        if category_id is not None:
            conditions.append(models.Question.category_id == category_id)
        if difficulty is not None:
            conditions.append(models.Question.difficulty == difficulty)
        if search_text:
            conditions.append(or_(
                models.Question.title.icontains(search_text, autoescape=True),
                models.Question.content.icontains(search_text, autoescape=True),
                cast(models.Question.question_number, String).contains(search_text, autoescape=True),
            ))
        count_stmt = select(func.count(models.Question.id)).where(*conditions)
        total = self.session.exec(count_stmt).one()
        if offset >= total:
            return [], total
        stmt = (
            select(models.Question)
            .where(*conditions)
            .order_by(models.Question.question_number, models.Question.id)
            .offset(offset)
            .limit(limit)
        )
        return self.session.exec(stmt).all(), total

    def increment_views(self, question: models.Question) -> models.Question:
        """Add one view in the database so concurrent viewers never overwrite each other."""
        self.session.execute(
            update(models.Question)
            .where(models.Question.id == question.id)
            .values(view_count=models.Question.view_count + 1)
        )
        self.session.commit()
        self.session.refresh(question)
        return question

    def set_published(self, question: models.Question, is_published: bool) -> models.Question:
        question.is_published = is_published
        question.modified_at = datetime.now(timezone.utc)
        self.session.add(question)
        self.session.commit()
        self.session.refresh(question)
        return question

    def count(self, published_only: bool = False) -> int:
        stmt = select(func.count(models.Question.id))
        if published_only:
            stmt = stmt.where(models.Question.is_published == True)  # noqa: E712
        return self.session.exec(stmt).one()

    def total_views(self) -> int:
        return self.session.exec(select(func.sum(models.Question.view_count))).one() or 0

    def difficulty_counts(self) -> Dict[str, int]:
        stmt = select(models.Question.difficulty, func.count(models.Question.id)).group_by(models.Question.difficulty)
        return {d.value: n for d, n in self.session.exec(stmt).all()}

    def all_numbers(self) -> List[int]:
        """Distinct question numbers in ascending order."""
        stmt = select(models.Question.question_number).distinct().order_by(models.Question.question_number)
        return list(self.session.exec(stmt).all())


class FavoriteRepository:
    """Persistence for user favorites."""
    def __init__(self, session: Session):
        self.session = session

    def get(self, user_id: int, question_id: int) -> Optional[models.Favorite]:
        stmt = select(models.Favorite).where(
            models.Favorite.user_id == user_id,
            models.Favorite.question_id == question_id
        )
        return self.session.exec(stmt).first()

    def add(self, favorite: models.Favorite) -> models.Favorite:
        self.session.add(favorite)
        self.session.commit()
        self.session.refresh(favorite)
        return favorite

    def delete(self, favorite: models.Favorite) -> None:
        self.session.delete(favorite)
        self.session.commit()

    def list_for_user(self, user_id: int) -> List[models.Favorite]:
        """Favorites for `user_id`, newest first."""
        stmt = select(models.Favorite).where(models.Favorite.user_id == user_id).order_by(
            models.Favorite.added_at.desc(), models.Favorite.id.desc()
        )
        return self.session.exec(stmt).all()


class ProgressRepository:
    """Persistence for completion records. Records are never deleted."""
    def __init__(self, session: Session):
        self.session = session

    def get(self, user_id: int, question_id: int) -> Optional[models.ProgressRecord]:
        stmt = select(models.ProgressRecord).where(
            models.ProgressRecord.user_id == user_id,
            models.ProgressRecord.question_id == question_id
        )
        return self.session.exec(stmt).first()

    def add(self, record: models.ProgressRecord) -> models.ProgressRecord:
        self.session.add(record)
        self.session.commit()
        self.session.refresh(record)
        return record

    def count_for_user(self, user_id: int) -> int:
        stmt = select(func.count(models.ProgressRecord.id)).where(models.ProgressRecord.user_id == user_id)
        return self.session.exec(stmt).one()

    def list_for_user(self, user_id: int) -> List[models.ProgressRecord]:
        """Completion records for `user_id`, most recent first."""
        stmt = select(models.ProgressRecord).where(models.ProgressRecord.user_id == user_id).order_by(
            models.ProgressRecord.completed_at.desc(), models.ProgressRecord.id.desc()
        )
        return self.session.exec(stmt).all()

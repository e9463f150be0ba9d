"""Business logic services used by HTTP controllers.

This module holds small service classes that coordinate repositories,
parsers and auxiliary logic. Services are intentionally thin: they
perform validation, execute domain logic and persist aggregates via
repositories. Failures are raised as `NotFoundError` or
`ValidationError` so controllers and scripts can map them.
"""

import logging
import math
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, List, Optional, Tuple
from passlib.context import CryptContext
import jwt
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session
from . import models, repositories
from .config import settings
from .errors import NotFoundError, ValidationError
from .schemas import QuestionCreate, QuestionFilter
from .utils.content_loader import content_files
from .utils.markdown_parser import parse_markdown_questions, truncate_title

logger = logging.getLogger(__name__)

PWD_CTX = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

DEFAULT_CATEGORY_ICON = "fa-question-circle"
DEFAULT_CATEGORY_COLOR = "#6c757d"
NEW_CATEGORY_RANGE_SIZE = 100


class AuthService:
    """Authentication related operations (register + authenticate)."""
    def __init__(self, session: Session):
        self.session = session
        self.user_repo = repositories.UserRepository(session)

    def register(self, username: str, password: str) -> models.User:
        """Create a new user with a hashed password.

        Returns the persisted `User` instance.
        """
        hashed = PWD_CTX.hash(password)
        u = models.User(username=username, password_hash=hashed)
        return self.user_repo.create(u)

    def authenticate(self, username: str, password: str):
        """Verify credentials and return a signed JWT token on success.

        Returns `None` if authentication fails.
        """
        user = self.user_repo.get_by_username(username)
        if not user:
            return None
        if not PWD_CTX.verify(password, user.password_hash):
            return None
        expire = datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRE_HOURS)
        payload = {"user_id": user.id, "username": user.username, "exp": int(expire.timestamp())}
        return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def _parse_difficulty(value: Optional[str]) -> Optional[models.Difficulty]:
    if value is None or not value.strip():
        return None
    try:
        return models.Difficulty.parse(value)
    except ValueError as e:
        raise ValidationError(str(e))


class CatalogService:
    """Browse, search and maintain the question catalog."""
    def __init__(self, session: Session):
        self.session = session
        self.q_repo = repositories.QuestionRepository(session)
        self.c_repo = repositories.CategoryRepository(session)

    def list_questions(self, filters: Optional[QuestionFilter] = None, page: int = 1,
                       page_size: Optional[int] = None) -> Tuple[List[models.Question], int]:
        """Return one page of published questions matching `filters` and the total count.

        Filters are conjunctive. An unknown category simply matches
        nothing. Raises `ValidationError` for a non-positive page or page
        size, a page size above `MAX_PAGE_SIZE`, or an unknown difficulty.
        """
        filters = filters or QuestionFilter()
        if page_size is None:
            page_size = settings.DEFAULT_PAGE_SIZE
        if page <= 0:
            raise ValidationError("page must be >= 1")
        if page_size <= 0:
            raise ValidationError("page_size must be >= 1")
        if page_size > settings.MAX_PAGE_SIZE:
            raise ValidationError(f"page_size must be <= {settings.MAX_PAGE_SIZE}")
        difficulty = _parse_difficulty(filters.difficulty)
        text = (filters.search_text or "").strip() or None
        return self.q_repo.search(
            category_id=filters.category_id,
            difficulty=difficulty,
            search_text=text,
            offset=(page - 1) * page_size,
            limit=page_size,
        )

    def list_by_category(self, category_id: int, page: int = 1, page_size: Optional[int] = None):
        """Like `list_questions` for one category, but a missing category is an error."""
        category = self.c_repo.get(category_id)
        if not category:
            raise NotFoundError(f"category not found: {category_id}")
        items, total = self.list_questions(QuestionFilter(category_id=category_id), page, page_size)
        return category, items, total

    def list_categories(self) -> List[Dict]:
        """Categories by display rank with their published question counts."""
        counts = self.c_repo.published_counts()
        return [{'category': c, 'question_count': counts.get(c.id, 0)} for c in self.c_repo.list_ordered()]

    def get(self, question_id: int) -> models.Question:
        q = self.q_repo.get(question_id)
        if not q:
            raise NotFoundError(f"question not found: {question_id}")
        return q

    def get_detail(self, question_id: int) -> models.Question:
        """Fetch a question for display and count the view."""
        return self.q_repo.increment_views(self.get(question_id))

    def set_published(self, question_id: int, is_published: bool) -> models.Question:
        return self.q_repo.set_published(self.get(question_id), is_published)

    def create_question(self, payload: QuestionCreate) -> models.Question:
        """Create a question, creating its category first when needed.

        A `new_category_name` that matches an existing category (ignoring
        case) reuses it. A missing or zero question number is set to one
        past the highest number in the category.
        """
        title = (payload.title or "").strip()
        content = (payload.content or "").strip()
        if not title:
            raise ValidationError("title is required")
        if not content:
            raise ValidationError("answer content is required")
        difficulty = _parse_difficulty(payload.difficulty) or models.Difficulty.INTERMEDIATE
        category = self._resolve_category(payload)
        number = payload.question_number
        if not number:
            number = self.q_repo.max_number_in_category(category.id) + 1
        q = models.Question(
            question_number=number,
            title=truncate_title(title),
            content=content,
            difficulty=difficulty,
            tags=payload.tags,
            category_id=category.id,
        )
        created = self.q_repo.create(q)
        logger.info("Created question %s (Q%d) in category %s", created.id, number, category.name)
        return created

    def _resolve_category(self, payload: QuestionCreate) -> models.Category:
        if payload.category_id:
            category = self.c_repo.get(payload.category_id)
            if not category:
                raise NotFoundError(f"category not found: {payload.category_id}")
            return category
        name = (payload.new_category_name or "").strip()
        if not name:
            raise ValidationError("select a category or provide a new category name")
        existing = self.c_repo.get_by_name(name)
        if existing:
            return existing
        max_order, max_end = self.c_repo.max_display_order_and_range_end()
        category = models.Category(
            name=name,
            description=f"Questions related to {name}",
            icon=(payload.new_category_icon or "").strip() or DEFAULT_CATEGORY_ICON,
            color_code=(payload.new_category_color or "").strip() or DEFAULT_CATEGORY_COLOR,
            display_order=max_order + 1,
            range_start=max_end + 1,
            range_end=max_end + NEW_CATEGORY_RANGE_SIZE,
        )
        logger.info("Creating category %r", name)
        return self.c_repo.create(category)

    def stats(self) -> Dict:
        """Home page summary of the catalog."""
        return {
            'total_questions': self.q_repo.count(published_only=True),
            'total_categories': len(self.c_repo.list_ordered()),
            'total_views': self.q_repo.total_views(),
        }


class UserStateService:
    """Per-user favorites and completion tracking.

    Mutations are single-user; concurrent duplicates are absorbed by the
    unique constraints on both tables.
    """
    def __init__(self, session: Session):
        self.session = session
        self.q_repo = repositories.QuestionRepository(session)
        self.fav_repo = repositories.FavoriteRepository(session)
        self.progress_repo = repositories.ProgressRepository(session)

    def _require_question(self, question_id: int) -> models.Question:
        q = self.q_repo.get(question_id)
        if not q:
            raise NotFoundError(f"question not found: {question_id}")
        return q

    def toggle_favorite(self, user_id: int, question_id: int) -> bool:
        """Add the favorite if absent, remove it if present.

        Returns True when the question is a favorite afterwards.
        """
        self._require_question(question_id)
        existing = self.fav_repo.get(user_id, question_id)
        if existing:
            self.fav_repo.delete(existing)
            return False
        try:
            self.fav_repo.add(models.Favorite(user_id=user_id, question_id=question_id))
        except IntegrityError:
            self.session.rollback()
            logger.warning("favorite for user %s question %s already added", user_id, question_id)
        return True

    def mark_completed(self, user_id: int, question_id: int) -> models.ProgressRecord:
        """Record completion once; repeated calls return the first record."""
        self._require_question(question_id)
        existing = self.progress_repo.get(user_id, question_id)
        if existing:
            return existing
        try:
            return self.progress_repo.add(models.ProgressRecord(user_id=user_id, question_id=question_id))
        except IntegrityError:
            self.session.rollback()
            return self.progress_repo.get(user_id, question_id)

    def is_favorite(self, user_id: int, question_id: int) -> bool:
        return self.fav_repo.get(user_id, question_id) is not None

    def is_completed(self, user_id: int, question_id: int) -> bool:
        return self.progress_repo.get(user_id, question_id) is not None

    def progress(self, user_id: int) -> Dict:
        """Return `{completed, total, percentage}` for `user_id`.

        `percentage` is on a 0-100 scale rounded to one decimal and is 0
        when the catalog is empty.
        """
        total = self.q_repo.count()
        completed = self.progress_repo.count_for_user(user_id)
        percentage = round(completed * 100.0 / total, 1) if total > 0 else 0.0
        return {'completed': completed, 'total': total, 'percentage': percentage}

    def list_favorites(self, user_id: int) -> List[models.Favorite]:
        return self.fav_repo.list_for_user(user_id)

    def list_completed(self, user_id: int) -> List[models.ProgressRecord]:
        return self.progress_repo.list_for_user(user_id)


class ImportService:
    """Import questions from markdown files and persist them to the DB."""
    def __init__(self, session: Session):
        self.session = session
        self.q_repo = repositories.QuestionRepository(session)
        self.c_repo = repositories.CategoryRepository(session)

    def import_markdown(self, text: str, category_id: int, assign_by_number: bool = False,
                        source: str = "<upload>", dry_run: bool = False) -> Dict:
        """Parse markdown `text` and create `Question` rows in `category_id`.

        Questions whose number already exists (in the DB or earlier in the
        same text) are skipped. With `assign_by_number`, a question goes
        to the category whose range contains its number, falling back to
        `category_id`. Returns `{imported, skipped, errors}`.
        """
        if not self.c_repo.get(category_id):
            raise NotFoundError(f"category not found: {category_id}")
        parsed = parse_markdown_questions(text, max_range_span=settings.MAX_RANGE_SPAN)
        logger.info("Parsed %d questions from %s", len(parsed), source)
        to_create = []
        seen = set()
        skipped = 0
        for p in parsed:
            number = p['question_number']
            if number in seen or self.q_repo.exists_by_number(number):
                logger.warning("Question %d already exists, skipping", number)
                skipped += 1
                continue
            seen.add(number)
            target = category_id
            if assign_by_number:
                ranged = self.c_repo.find_for_number(number)
                if ranged:
                    target = ranged.id
            to_create.append(models.Question(
                question_number=number,
                title=p['title'],
                content=p['content'],
                difficulty=p['difficulty'],
                category_id=target,
            ))
        if to_create and not dry_run:
            self.q_repo.create_many(to_create)
        result = {'imported': len(to_create), 'skipped': skipped, 'errors': []}
        logger.info("Import of %s completed: %d imported, %d skipped", source, result['imported'], skipped)
        return result

    def import_file(self, path: Path, category_id: int, assign_by_number: bool = False, dry_run: bool = False) -> Dict:
        """Import a single markdown file; a missing file is reported, not raised."""
        if not path.exists():
            logger.error("File not found: %s", path)
            return {'imported': 0, 'skipped': 0, 'errors': [f"File not found: {path}"]}
        text = path.read_text(encoding='utf-8')
        return self.import_markdown(text, category_id, assign_by_number=assign_by_number, source=str(path), dry_run=dry_run)

    def import_directory(self, base_dir: Path, dry_run: bool = False) -> Dict:
        """Import every known content file under `base_dir`.

        Per-file failures are collected in `details` and do not stop the
        remaining files. `success` is False when any file reported errors.
        """
        summary = {'imported': 0, 'skipped': 0, 'error_count': 0, 'details': []}
        for entry in content_files(base_dir):
            logger.info("Processing file: %s", entry.path)
            try:
                result = self.import_file(entry.path, entry.category_id, entry.assign_by_number, dry_run=dry_run)
            except (NotFoundError, UnicodeDecodeError) as e:
                self.session.rollback()
                logger.error("Failed to import %s: %s", entry.path.name, e)
                result = {'imported': 0, 'skipped': 0, 'errors': [str(e)]}
            summary['imported'] += result['imported']
            summary['skipped'] += result['skipped']
            summary['error_count'] += len(result['errors'])
            summary['details'].append({'file': entry.path.name, **result})
        summary['success'] = summary['error_count'] == 0
        return summary


def gap_ranges(missing: List[int]) -> List[str]:
    """Compress sorted missing numbers into labels like `Q5` or `Q7-Q9`."""
    out = []
    if not missing:
        return out
    start = end = missing[0]
    for n in missing[1:]:
        if n == end + 1:
            end = n
            continue
        out.append(f"Q{start}" if start == end else f"Q{start}-Q{end}")
        start = end = n
    out.append(f"Q{start}" if start == end else f"Q{start}-Q{end}")
    return out


class ReportService:
    """Read-only summaries used to verify imported content."""
    def __init__(self, session: Session):
        self.session = session
        self.q_repo = repositories.QuestionRepository(session)
        self.c_repo = repositories.CategoryRepository(session)

    def verify(self) -> Dict:
        """Totals by category and difficulty plus the number range."""
        numbers = self.q_repo.all_numbers()
        return {
            'total_questions': self.q_repo.count(),
            'by_category': [{'name': name, 'questions': n} for name, n in self.c_repo.question_counts()],
            'by_difficulty': self.q_repo.difficulty_counts(),
            'min_number': numbers[0] if numbers else 0,
            'max_number': numbers[-1] if numbers else 0,
        }

    def number_gaps(self) -> Dict:
        """Find question numbers missing between the lowest and highest in use."""
        numbers = self.q_repo.all_numbers()
        if not numbers:
            return {'total': 0, 'min': 0, 'max': 0, 'expected': 0, 'missing': [], 'ranges': []}
        low, high = numbers[0], numbers[-1]
        present = set(numbers)
        missing = [n for n in range(low, high + 1) if n not in present]
        return {
            'total': len(numbers),
            'min': low,
            'max': high,
            'expected': high - low + 1,
            'missing': missing,
            'ranges': gap_ranges(missing),
        }


def total_pages(total: int, page_size: int) -> int:
    return math.ceil(total / page_size) if page_size > 0 else 0

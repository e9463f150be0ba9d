"""FastAPI application entrypoint and HTTP controllers.

This module defines the HTTP endpoints of the Interview Question Bank
backend. Controllers are intentionally thin: they accept requests,
delegate to services, and return JSON responses.

Endpoints implemented:
- POST /auth/register
- POST /auth/login
- GET /categories
- GET /categories/{category_id}/questions
- GET /questions
- GET /questions/{question_id}
- POST /questions
- POST /questions/import
- POST /questions/{question_id}/publish
- POST /questions/{question_id}/favorite
- POST /questions/{question_id}/complete
- GET /me/favorites
- GET /me/progress
- GET /stats
- GET /health
"""

from fastapi import FastAPI, Depends, UploadFile, File, HTTPException, Form, Request
from fastapi.responses import Response
from fastapi.middleware.cors import CORSMiddleware
from sqlmodel import Session
from typing import Optional
import json
import logging
import time
import uuid
from .database import create_db_and_tables, get_session
from . import services, repositories, models
from .auth import get_current_user, get_optional_user
from .errors import NotFoundError, ValidationError
from .schemas import RegisterIn, TokenOut, QuestionFilter, QuestionCreate, PublishIn
from .config import settings

app = FastAPI(title="Interview Question Bank API")
logger = logging.getLogger("interview_bank.api")
if not logger.handlers:
    logging.basicConfig(level=settings.LOG_LEVEL)

MARKDOWN_CONTENT_TYPES = ("text/markdown", "text/x-markdown", "text/plain", "application/octet-stream")

if settings.ALLOW_DEV_CORS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

create_db_and_tables()


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
    request.state.request_id = req_id
    started = time.perf_counter()
    response: Response
    try:
        response = await call_next(request)
    except Exception:
        elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
        logger.exception(
            "request_failed %s",
            json.dumps(
                {
                    "request_id": req_id,
                    "path": request.url.path,
                    "method": request.method,
                    "duration_ms": elapsed_ms,
                    "client": request.client.host if request.client else "unknown",
                },
                ensure_ascii=True,
            ),
        )
        raise
    response.headers["X-Request-ID"] = req_id
    elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
    logger.info(
        "request_done %s",
        json.dumps(
            {
                "request_id": req_id,
                "path": request.url.path,
                "method": request.method,
                "status_code": response.status_code,
                "duration_ms": elapsed_ms,
                "client": request.client.host if request.client else "unknown",
            },
            ensure_ascii=True,
        ),
    )
    return response


def _category_out(c: models.Category, question_count: Optional[int] = None) -> dict:
    out = {
        'id': c.id,
        'name': c.name,
        'description': c.description,
        'icon': c.icon,
        'color_code': c.color_code,
        'display_order': c.display_order,
    }
    if question_count is not None:
        out['question_count'] = question_count
    return out


def _question_summary(q: models.Question) -> dict:
    return {
        'id': q.id,
        'question_number': q.question_number,
        'title': q.title,
        'difficulty': q.difficulty.value,
        'tags': q.tags,
        'category_id': q.category_id,
        'category_name': q.category.name if q.category else None,
        'is_published': q.is_published,
        'view_count': q.view_count,
        'created_at': q.created_at.isoformat() if q.created_at else None,
    }


def _question_detail(q: models.Question) -> dict:
    out = _question_summary(q)
    out['content'] = q.content
    out['modified_at'] = q.modified_at.isoformat() if q.modified_at else None
    return out


def _page_out(items, total: int, page: int, page_size: int) -> dict:
    return {
        'items': [_question_summary(q) for q in items],
        'total': total,
        'page': page,
        'page_size': page_size,
        'total_pages': services.total_pages(total, page_size),
    }


@app.post('/auth/register')
def register(payload: RegisterIn, db: Session = Depends(get_session)):
    """Register a new user (idempotent).

    Returns existing user if the username already exists to make the
    operation idempotent (useful for automation/tests).
    """
    existing = repositories.UserRepository(db).get_by_username(payload.username)
    if existing:
        return {'id': existing.id, 'username': existing.username}
    user = services.AuthService(db).register(payload.username, payload.password)
    return {'id': user.id, 'username': user.username}


@app.post('/auth/login', response_model=TokenOut)
def login(payload: RegisterIn, db: Session = Depends(get_session)):
    """Authenticate a user and return a short-lived JWT token.

    The returned token contains `user_id` and `username` and is signed
    using the configured JWT secret.
    """
    token = services.AuthService(db).authenticate(payload.username, payload.password)
    if not token:
        raise HTTPException(status_code=401, detail='invalid credentials')
    return {'access_token': token}


@app.get('/categories')
def list_categories(db: Session = Depends(get_session)):
    """List categories by display rank with published question counts."""
    rows = services.CatalogService(db).list_categories()
    return [_category_out(r['category'], r['question_count']) for r in rows]


@app.get('/categories/{category_id}/questions')
def list_category_questions(category_id: int, page: int = 1, page_size: Optional[int] = None,
                            db: Session = Depends(get_session)):
    """Paginated published questions of one category; 404 for unknown ids."""
    page_size = page_size if page_size is not None else settings.DEFAULT_PAGE_SIZE
    try:
        category, items, total = services.CatalogService(db).list_by_category(category_id, page, page_size)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    out = _page_out(items, total, page, page_size)
    out['category'] = _category_out(category)
    return out


@app.get('/questions')
def list_questions(category_id: Optional[int] = None, difficulty: Optional[str] = None,
                   search: Optional[str] = None, page: int = 1, page_size: Optional[int] = None,
                   db: Session = Depends(get_session)):
    """Browse published questions.

    Filters are combined with AND: `category_id`, `difficulty`
    (Beginner/Intermediate/Advanced) and `search` (case-insensitive match
    on title, content and question number). An unknown category returns
    an empty page; a bad page, page size or difficulty returns 400.
    """
    page_size = page_size if page_size is not None else settings.DEFAULT_PAGE_SIZE
    filters = QuestionFilter(category_id=category_id, difficulty=difficulty, search_text=search)
    try:
        items, total = services.CatalogService(db).list_questions(filters, page, page_size)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _page_out(items, total, page, page_size)


@app.get('/questions/{question_id}')
def question_detail(question_id: int, db: Session = Depends(get_session),
                    user: Optional[models.User] = Depends(get_optional_user)):
    """Return a question with its markdown content and count the view.

    Authenticated callers also get `is_favorite` and `is_completed`.
    """
    try:
        q = services.CatalogService(db).get_detail(question_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    out = _question_detail(q)
    if user is not None:
        state = services.UserStateService(db)
        out['is_favorite'] = state.is_favorite(user.id, q.id)
        out['is_completed'] = state.is_completed(user.id, q.id)
    return out


@app.post('/questions', status_code=201)
def create_question(payload: QuestionCreate, db: Session = Depends(get_session),
                    user: models.User = Depends(get_current_user)):
    """Create a question, optionally in a new category."""
    try:
        q = services.CatalogService(db).create_question(payload)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _question_detail(q)


@app.post('/questions/import')
def import_markdown(category_id: int = Form(...), file: UploadFile = File(...),
                    db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """Upload a markdown file of `## Qn:` sections and import its questions.

    Questions whose number already exists are skipped. Returns a JSON
    summary with imported/skipped counts.
    """
    if not file.filename:
        raise HTTPException(status_code=400, detail='no file')
    # media type without parameters such as charset
    media_type = (file.content_type or '').split(';')[0].strip().lower()
    if media_type and media_type not in MARKDOWN_CONTENT_TYPES:
        raise HTTPException(status_code=400, detail='unsupported content type')
    content = file.file.read(settings.MAX_UPLOAD_BYTES + 1)
    if len(content) > settings.MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=400, detail='file too large')
    try:
        text = content.decode('utf-8')
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail='file must be UTF-8 text')
    try:
        return services.ImportService(db).import_markdown(text, category_id, source=file.filename)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@app.post('/questions/{question_id}/publish')
def set_published(question_id: int, payload: PublishIn, db: Session = Depends(get_session),
                  user: models.User = Depends(get_current_user)):
    """Publish or unpublish a question. Unpublished questions drop out of browsing."""
    try:
        q = services.CatalogService(db).set_published(question_id, payload.is_published)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {'id': q.id, 'is_published': q.is_published}


@app.post('/questions/{question_id}/favorite')
def toggle_favorite(question_id: int, db: Session = Depends(get_session),
                    user: models.User = Depends(get_current_user)):
    """Toggle the question in the caller's favorites."""
    try:
        is_favorite = services.UserStateService(db).toggle_favorite(user.id, question_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {'success': True, 'is_favorite': is_favorite}


@app.post('/questions/{question_id}/complete')
def mark_completed(question_id: int, db: Session = Depends(get_session),
                   user: models.User = Depends(get_current_user)):
    """Mark the question completed for the caller (idempotent)."""
    try:
        record = services.UserStateService(db).mark_completed(user.id, question_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {'success': True, 'is_completed': True, 'completed_at': record.completed_at.isoformat()}


@app.get('/me/favorites')
def my_favorites(db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """The caller's favorite questions, most recently added first."""
    favorites = services.UserStateService(db).list_favorites(user.id)
    return [{'added_at': f.added_at.isoformat(), 'question': _question_summary(f.question)} for f in favorites]


@app.get('/me/progress')
def my_progress(db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """Completion summary plus completed questions, most recent first."""
    state = services.UserStateService(db)
    out = state.progress(user.id)
    out['completed_questions'] = [
        {'completed_at': r.completed_at.isoformat(), 'question': _question_summary(r.question)}
        for r in state.list_completed(user.id)
    ]
    return out


@app.get('/stats')
def stats(db: Session = Depends(get_session)):
    """Catalog totals for the home page."""
    return services.CatalogService(db).stats()


@app.get("/health")
def health():
    """Lightweight health check for uptime monitoring."""
    return {"status": "ok"}

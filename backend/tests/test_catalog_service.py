import itertools

import pytest
from sqlmodel import Session

from interview_bank import models
from interview_bank.database import engine
from interview_bank.config import settings
from interview_bank.errors import NotFoundError, ValidationError
from interview_bank.schemas import QuestionCreate, QuestionFilter
from interview_bank.services import CatalogService


def test_seeded_categories_and_empty_catalog(session):
    svc = CatalogService(session)
    cats = svc.list_categories()
    assert len(cats) == 7
    assert [c['category'].display_order for c in cats] == list(range(1, 8))
    for category_id, difficulty, text in itertools.product(
        (None, 1, 7, 999), (None, 'Beginner', 'advanced'), (None, 'linq', '')
    ):
        items, total = svc.list_questions(QuestionFilter(category_id=category_id, difficulty=difficulty, search_text=text))
        assert items == []
        assert total == 0


def test_filters_are_conjunctive(session, make_question):
    B, I, A = models.Difficulty.BEGINNER, models.Difficulty.INTERMEDIATE, models.Difficulty.ADVANCED
    make_question(21, title='LINQ basics', category_id=1, difficulty=B)
    make_question(22, title='Generics', content='Uses LINQ internally', category_id=1, difficulty=A)
    make_question(51, title='Routing', category_id=2, difficulty=I)
    make_question(52, title='Linq in controllers', category_id=2, difficulty=A)
    make_question(100, title='Blob storage', category_id=4, difficulty=B)
    svc = CatalogService(session)
    for category_id, difficulty, text in itertools.product(
        (None, 1, 2, 999), (None, 'Beginner', 'Advanced'), (None, 'linq')
    ):
        items, total = svc.list_questions(QuestionFilter(category_id=category_id, difficulty=difficulty, search_text=text))
        assert total == len(items)
        for q in items:
            if category_id is not None:
                assert q.category_id == category_id
            if difficulty is not None:
                assert q.difficulty.value == difficulty
            if text is not None:
                assert text in q.title.lower() or text in q.content.lower()
    items, total = svc.list_questions(QuestionFilter(category_id=1, difficulty='advanced', search_text='LINQ'))
    assert [q.question_number for q in items] == [22]
    assert total == 1


def test_search_is_case_insensitive_and_matches_numbers(session, make_question):
    make_question(101, title='Explain Azure Functions', content='Serverless compute')
    make_question(55, title='Filters', content='Action FILTERS run around actions')
    svc = CatalogService(session)
    assert [q.question_number for q in svc.list_questions(QuestionFilter(search_text='azure functions'))[0]] == [101]
    assert [q.question_number for q in svc.list_questions(QuestionFilter(search_text='serverLESS'))[0]] == [101]
    assert [q.question_number for q in svc.list_questions(QuestionFilter(search_text='101'))[0]] == [101]
    assert svc.list_questions(QuestionFilter(search_text='100%'))[1] == 0


def test_unpublished_questions_are_hidden(session, make_question):
    make_question(21)
    make_question(22, is_published=False)
    items, total = CatalogService(session).list_questions()
    assert [q.question_number for q in items] == [21]
    assert total == 1


def test_pagination_is_ordered_by_number(session, make_question):
    for n in (25, 21, 24, 22, 23):
        make_question(n)
    svc = CatalogService(session)
    page1, total = svc.list_questions(page=1, page_size=2)
    page3, _ = svc.list_questions(page=3, page_size=2)
    beyond, _ = svc.list_questions(page=4, page_size=2)
    assert total == 5
    assert [q.question_number for q in page1] == [21, 22]
    assert [q.question_number for q in page3] == [25]
    assert beyond == []


@pytest.mark.parametrize('page,page_size', [(0, 10), (-1, 10), (1, 0), (1, -5)])
def test_invalid_pagination_rejected(session, page, page_size):
    with pytest.raises(ValidationError):
        CatalogService(session).list_questions(page=page, page_size=page_size)


def test_page_size_above_maximum_rejected(session):
    with pytest.raises(ValidationError):
        CatalogService(session).list_questions(page=1, page_size=settings.MAX_PAGE_SIZE + 1)


def test_unknown_difficulty_rejected(session):
    with pytest.raises(ValidationError):
        CatalogService(session).list_questions(QuestionFilter(difficulty='Expert'))


def test_list_by_category(session, make_question):
    make_question(51, category_id=2)
    make_question(21, category_id=1)
    category, items, total = CatalogService(session).list_by_category(2)
    assert category.name == 'ASP.NET MVC'
    assert [q.question_number for q in items] == [51]
    assert total == 1
    with pytest.raises(NotFoundError):
        CatalogService(session).list_by_category(999)


def test_get_detail_increments_views(session, make_question):
    q = make_question(21)
    svc = CatalogService(session)
    assert svc.get_detail(q.id).view_count == 1
    assert svc.get_detail(q.id).view_count == 2
    with pytest.raises(NotFoundError):
        svc.get_detail(12345)


def test_set_published_toggles_visibility(session, make_question):
    q = make_question(21)
    svc = CatalogService(session)
    updated = svc.set_published(q.id, False)
    assert updated.is_published is False
    assert updated.modified_at is not None
    assert svc.list_questions()[1] == 0
    svc.set_published(q.id, True)
    assert svc.list_questions()[1] == 1


def test_create_question_auto_numbers_within_category(session, make_question):
    make_question(21, category_id=1)
    make_question(30, category_id=1)
    q = CatalogService(session).create_question(QuestionCreate(title='Records', content='Immutable types', category_id=1))
    assert q.question_number == 31
    assert q.difficulty == models.Difficulty.INTERMEDIATE


def test_create_question_in_new_category(session):
    svc = CatalogService(session)
    q = svc.create_question(QuestionCreate(title='Docker basics', content='Containers', new_category_name='Containers', difficulty='beginner'))
    cat = session.get(models.Category, q.category_id)
    assert cat.name == 'Containers'
    assert cat.display_order == 8
    assert (cat.range_start, cat.range_end) == (201, 300)
    assert cat.icon == 'fa-question-circle'
    assert cat.color_code == '#6c757d'
    assert cat.description == 'Questions related to Containers'
    assert q.question_number == 1
    assert q.difficulty == models.Difficulty.BEGINNER


def test_create_question_reuses_category_by_name(session):
    q = CatalogService(session).create_question(QuestionCreate(title='Cosmos DB', content='NoSQL', new_category_name='azure CLOUD'))
    assert q.category_id == 4


@pytest.mark.parametrize('payload', [
    QuestionCreate(title='No body', content='   ', category_id=1),
    QuestionCreate(title='  ', content='Body', category_id=1),
    QuestionCreate(title='No category', content='Body'),
    QuestionCreate(title='Bad level', content='Body', category_id=1, difficulty='Expert'),
])
def test_create_question_validation(session, payload):
    with pytest.raises(ValidationError):
        CatalogService(session).create_question(payload)


def test_create_question_unknown_category(session):
    with pytest.raises(NotFoundError):
        CatalogService(session).create_question(QuestionCreate(title='T', content='C', category_id=42))


def test_stats(session, make_question):
    svc = CatalogService(session)
    a = make_question(21)
    make_question(22, is_published=False)
    svc.get_detail(a.id)
    svc.get_detail(a.id)
    assert svc.stats() == {'total_questions': 1, 'total_categories': 7, 'total_views': 2}


def test_page_far_past_the_end_is_empty(session, make_question):
    make_question(21)
    svc = CatalogService(session)
    items, total = svc.list_questions(page=2**62, page_size=settings.MAX_PAGE_SIZE)
    assert items == []
    assert total == 1
    _, items, total = svc.list_by_category(1, page=2**62)
    assert items == []
    assert total == 1


def test_ids_beyond_integer_range_match_nothing(session, make_question):
    make_question(21)
    svc = CatalogService(session)
    items, total = svc.list_questions(QuestionFilter(category_id=2**70))
    assert items == []
    assert total == 0
    with pytest.raises(NotFoundError):
        svc.list_by_category(2**70)
    with pytest.raises(NotFoundError):
        svc.get_detail(2**70)
    with pytest.raises(NotFoundError):
        svc.set_published(-1, False)


def test_view_increment_keeps_concurrent_views(session, make_question):
    q = make_question(21)
    # `q` stays loaded in this session while another session counts a view
    with Session(engine) as other:
        assert CatalogService(other).get_detail(q.id).view_count == 1
    assert CatalogService(session).get_detail(q.id).view_count == 2

from interview_bank.models import Difficulty
from interview_bank.utils.markdown_parser import parse_markdown_questions, determine_difficulty, truncate_title

SAMPLE = """# C# answers

## Q21: What is a nullable type?
A nullable type can hold null.

### **Q22:** Explain generic variance
Covariance and contravariance in distributed systems.

## Q23-Q24: Partial classes (Combined)
Partial classes split a type across files.
"""


def test_parse_single_bold_and_range_headings():
    res = parse_markdown_questions(SAMPLE)
    assert [q['question_number'] for q in res] == [21, 22, 23, 24]
    assert res[0]['title'] == 'What is a nullable type?'
    assert res[0]['content'].endswith('A nullable type can hold null.')
    assert res[1]['title'] == 'Explain generic variance'


def test_range_expands_into_parts_with_shared_content():
    res = parse_markdown_questions(SAMPLE)
    parts = [q for q in res if q['question_number'] in (23, 24)]
    assert [q['title'] for q in parts] == ['Partial classes (Part 1)', 'Partial classes (Part 2)']
    assert parts[0]['content'] == parts[1]['content']


def test_content_stops_at_next_heading():
    res = parse_markdown_questions(SAMPLE)
    assert 'Q22' not in res[0]['content']
    assert 'Covariance' not in res[0]['content']


def test_windows_line_endings():
    res = parse_markdown_questions("## Q5: First\r\nbody one\r\n## Q6: Second\r\nbody two\r\n")
    assert [q['question_number'] for q in res] == [5, 6]
    assert res[0]['content'] == 'First\nbody one'


def test_text_without_headings_yields_nothing():
    assert parse_markdown_questions('# Title\n\nJust prose, no questions.\n') == []
    assert parse_markdown_questions('') == []


def test_difficulty_keywords():
    assert determine_difficulty('What is a delegate?') == Difficulty.BEGINNER
    assert determine_difficulty('Tuning performance of queries') == Difficulty.ADVANCED
    # advanced terms win when both kinds appear
    assert determine_difficulty('A basic look at CQRS') == Difficulty.ADVANCED
    assert determine_difficulty('Explain middleware ordering') == Difficulty.INTERMEDIATE


def test_parsed_difficulty_uses_content():
    res = parse_markdown_questions(SAMPLE)
    assert res[0]['difficulty'] == Difficulty.BEGINNER
    assert res[1]['difficulty'] == Difficulty.ADVANCED
    assert res[2]['difficulty'] == Difficulty.INTERMEDIATE


def test_long_titles_are_truncated():
    title = truncate_title('x' * 600)
    assert len(title) == 500
    assert title.endswith('...')
    assert truncate_title('short') == 'short'


def test_oversized_and_reversed_ranges_are_skipped(caplog):
    text = (
        "## Q1-Q1000000: Everything at once\nToo many.\n\n"
        "## Q9-Q3: Backwards\nReversed.\n\n"
        "## Q10-Q12: Small range\nFine.\n"
    )
    with caplog.at_level('WARNING', logger='interview_bank.utils.markdown_parser'):
        res = parse_markdown_questions(text)
    assert [q['question_number'] for q in res] == [10, 11, 12]
    assert 'Q1-Q1000000' in caplog.text
    assert 'Q9-Q3' in caplog.text


def test_range_span_limit_is_inclusive():
    text = "## Q1-Q3: Three\nbody\n"
    assert len(parse_markdown_questions(text, max_range_span=3)) == 3
    assert parse_markdown_questions(text, max_range_span=2) == []

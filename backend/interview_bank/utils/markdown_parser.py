"""Markdown parsing utilities that convert interview answer files into a
normalized question list.

Questions are introduced by level 2 or 3 headings such as `## Q12: Title`
or `### **Q12:** Title`. A range heading like `## Q77-Q80: Title` yields
one question per number sharing the same content. Parsers return a list
of dictionaries with keys: `question_number`, `title`, `content` and
`difficulty`.
"""

import logging
import re
from typing import Dict, List
from ..models import Difficulty

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 500
MAX_RANGE_SPAN = 100

# next question heading of either kind, or end of text
_NEXT_HEADING = r'(?=\n#{2,3}\s+\*{0,2}Q[\d\-]+:|\Z)'
SINGLE_PATTERN = re.compile(r'#{2,3}\s+\*{0,2}Q(\d+)(?!-Q\d+):\*{0,2}\s+(.+?)' + _NEXT_HEADING, re.DOTALL)
RANGE_PATTERN = re.compile(r'#{2,3}\s+\*{0,2}Q(\d+)-Q(\d+):\*{0,2}\s+(.+?)' + _NEXT_HEADING, re.DOTALL)

ADVANCED_KEYWORDS = (
    'advanced', 'optimization', 'performance', 'architecture', 'complex',
    'distributed', 'microservices', 'saga pattern', 'event sourcing', 'cqrs',
)
BEGINNER_KEYWORDS = ('basic', 'fundamental', 'introduction', 'simple', 'what is', 'define')


def parse_markdown_questions(text: str, max_range_span: int = MAX_RANGE_SPAN) -> List[Dict]:
    """Parse markdown text into question dicts ordered by position in the file.

    Range headings that run backwards or cover more than `max_range_span`
    numbers are skipped with a warning.
    """
    text = text.replace('\r\n', '\n')
    found = []
    for m in SINGLE_PATTERN.finditer(text):
        number = int(m.group(1))
        content = m.group(2).strip()
        found.append((m.start(), number, _make_question(number, _first_line(content) or f'Question {number}', content)))
    for m in RANGE_PATTERN.finditer(text):
        start, end = int(m.group(1)), int(m.group(2))
        if end < start or end - start + 1 > max_range_span:
            logger.warning("Skipping range heading Q%s-Q%s: span must be 1..%s", start, end, max_range_span)
            continue
        content = m.group(3).strip()
        base_title = _first_line(content) or f'Questions {start}-{end}'
        for number in range(start, end + 1):
            title = base_title.replace('(Combined)', f'(Part {number - start + 1})').strip()
            found.append((m.start(), number, _make_question(number, title, content)))
    found.sort(key=lambda item: (item[0], item[1]))
    return [q for _, _, q in found]


def determine_difficulty(content: str) -> Difficulty:
    """Guess a difficulty from keywords; advanced terms win over beginner ones."""
    lower = content.lower()
    if any(kw in lower for kw in ADVANCED_KEYWORDS):
        return Difficulty.ADVANCED
    if any(kw in lower for kw in BEGINNER_KEYWORDS):
        return Difficulty.BEGINNER
    return Difficulty.INTERMEDIATE


def truncate_title(title: str) -> str:
    if len(title) > MAX_TITLE_LENGTH:
        return title[:MAX_TITLE_LENGTH - 3] + '...'
    return title


def _make_question(number: int, title: str, content: str) -> Dict:
    return {
        'question_number': number,
        'title': truncate_title(title),
        'content': content,
        'difficulty': determine_difficulty(content),
    }


def _first_line(content: str) -> str:
    for line in content.split('\n'):
        if line.strip():
            return line.strip()
    return ''

"""Helpers to locate the markdown answer files under a content folder.

The loader knows which file feeds which category and returns
`ContentFile` entries suitable for feeding to the import service.
"""

from pathlib import Path
from typing import List, NamedTuple


class ContentFile(NamedTuple):
    path: Path
    category_id: int
    # place each question by the category whose number range contains it
    assign_by_number: bool = False


# order matters: earlier files win when two files carry the same number
FILE_CATEGORY_MAP = (
    ('Comprehensive_Interview_Answers.md', 1, True),
    ('Q21_Q25_C#.md', 1, False),
    ('Q26_Q30_C#.md', 1, False),
    ('Q31_Q34_C#.md', 1, False),
    ('Q35_Q43_async_C#.md', 1, False),
    ('Q44_Q50_C#.md', 1, False),
    ('Q51_Q60_mvc_batch.md', 2, False),
    ('Q61_Q70_mvc_batch.md', 2, False),
    ('Q71_Q80_mvc_batch.md', 2, False),
    ('Q81_Q90_mvc_batch.md', 2, False),
    ('Q91_Q99_DotNet_Advanced.md', 3, False),
    ('Q100_Q115_Azure_Cloud.md', 4, False),
    ('Q108-Q115_Azure.md', 4, False),
    ('Q111_Q120_continuation.md', 4, False),
    ('Q113_Q120_final.md', 4, False),
    ('Q121_Q140_DevOps_Microservices.md', 5, False),
    ('Q125_Q140_complete.md', 5, False),
    ('Q141_Q171_Microservices_Advanced.md', 6, False),
    ('Q172_Q200_SQL_Database.md', 7, False),
)


def content_files(root: Path) -> List[ContentFile]:
    """Return every mapped file under `root` with its category settings.

    Paths are returned whether or not they exist so callers can report
    missing files.
    """
    return [ContentFile(root / name, category_id, by_number) for name, category_id, by_number in FILE_CATEGORY_MAP]

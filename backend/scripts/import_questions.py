"""CLI script to import markdown questions and inspect the result.

Usage:
    python scripts/import_questions.py import [--dir DIR] [--dry-run]
    python scripts/import_questions.py verify
    python scripts/import_questions.py gaps
"""
import sys
import argparse
import pathlib
from typing import Optional
# Ensure `backend/` is on sys.path so package imports work when running this script directly
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
from sqlmodel import Session
from interview_bank.config import settings
from interview_bank.database import engine, create_db_and_tables
from interview_bank import services


def run_import(base_dir: Optional[pathlib.Path] = None, dry_run: bool = False) -> int:
    """Import every known markdown file under `base_dir` (default `CONTENT_DIR`)."""
    base_dir = base_dir or settings.CONTENT_DIR
    print(f'Base directory: {base_dir}')
    with Session(engine) as session:
        result = services.ImportService(session).import_directory(base_dir, dry_run=dry_run)
    for d in result['details']:
        if d['errors']:
            print(f"Failed to import {d['file']}: {'; '.join(d['errors'])}")
        else:
            print(f"Imported {d['file']}: created {d['imported']}, skipped {d['skipped']}")
    print('=== Import Complete ===')
    print(f"Imported: {result['imported']}")
    print(f"Skipped: {result['skipped']}")
    print(f"Errors: {result['error_count']}")
    print(f"Success: {result['success']}")
    return 0 if result['success'] else 1


def run_verify() -> int:
    """Print question totals by category and difficulty."""
    with Session(engine) as session:
        report = services.ReportService(session).verify()
    print('=== Question Import Verification ===')
    print(f"Total Questions: {report['total_questions']}")
    print('Questions by Category:')
    for row in report['by_category']:
        print(f"  {row['name']}: {row['questions']} questions")
    print('Questions by Difficulty:')
    for name, count in report['by_difficulty'].items():
        print(f'  {name}: {count} questions')
    print(f"Question Number Range: Q{report['min_number']} - Q{report['max_number']}")
    return 0


def run_gaps() -> int:
    """Print question numbers missing between the lowest and highest in use."""
    with Session(engine) as session:
        report = services.ReportService(session).number_gaps()
    print('=== Question Numbers Analysis ===')
    print(f"Total Questions in Database: {report['total']}")
    if not report['total']:
        return 0
    print(f"Range: Q{report['min']} - Q{report['max']}")
    print(f"Expected Total (if no gaps): {report['expected']}")
    print(f"Missing Questions: {len(report['missing'])}")
    if report['ranges']:
        print('Missing Question Numbers:')
        for label in report['ranges']:
            print(f'  {label}')
    else:
        print(f"No gaps found - all questions from Q{report['min']} to Q{report['max']} are present")
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description='Interview question bank content tools')
    sub = parser.add_subparsers(dest='command', required=True)
    imp = sub.add_parser('import', help='Import markdown question files')
    imp.add_argument('--dir', type=pathlib.Path, help='Folder holding the markdown files')
    imp.add_argument('--dry-run', action='store_true', help='Parse and count without saving')
    sub.add_parser('verify', help='Summarize imported questions')
    sub.add_parser('gaps', help='List missing question numbers')
    args = parser.parse_args(argv)
    create_db_and_tables()
    if args.command == 'import':
        return run_import(args.dir, dry_run=args.dry_run)
    if args.command == 'verify':
        return run_verify()
    return run_gaps()


if __name__ == '__main__':
    sys.exit(main())

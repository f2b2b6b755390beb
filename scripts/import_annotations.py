#!/usr/bin/env python3
"""
Import member annotations from an Excel sheet or CSV file into the
member_annotations table.

The file uses the annotation sheet layout (first row = header, positional
columns): Unique ID, Member ID, Email, Comments, Notes, Tags, Note Date,
Last Updated, Persistence Key. Rows are upserted by Unique ID: an existing
row with the same ID is replaced, anything else is appended.

Usage:
    python scripts/import_annotations.py --file path/to/annotations.xlsx [--sheet Member_Annotations] [--dry-run]

Arguments:
    --file      Path to the .xlsx or .csv file
    --sheet     Sheet name for Excel files (default: Member_Annotations)
    --dry-run   Preview changes without importing

Examples:
    # Import from the dashboard workbook's annotation sheet
    python scripts/import_annotations.py --file dashboard/data/memberships.xlsx

    # Preview a CSV export
    python scripts/import_annotations.py --file annotations.csv --dry-run
"""

import argparse
import sys
import os

# Add the project root to the path so we can import from dashboard.*
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, project_root)

import pandas as pd
from typing import Dict, List


def load_annotation_rows(file_path: str, sheet_name: str) -> List[List[str]]:
    """
    Load annotation data rows (header dropped) from Excel or CSV.

    Raises:
        FileNotFoundError: If file doesn't exist
        ValueError: If the file has fewer columns than the annotation layout
    """
    from dashboard.logics.models import ANNOTATION_HEADERS

    if not os.path.exists(file_path):
        raise FileNotFoundError(f"File not found: {file_path}")

    if file_path.lower().endswith(".csv"):
        df = pd.read_csv(file_path, header=None, dtype=str)
    else:
        df = pd.read_excel(file_path, sheet_name=sheet_name, header=None, dtype=str)

    df = df.fillna("")
    if df.shape[1] < 1:
        raise ValueError("File has no columns")

    rows = []
    for idx, values in enumerate(df.values.tolist()[1:]):
        row = [str(v).strip() for v in values][:len(ANNOTATION_HEADERS)]
        row += [""] * (len(ANNOTATION_HEADERS) - len(row))

        # Skip rows the dashboard cannot key
        if not row[0]:
            print(f"  Skipping row {idx + 2}: Empty Unique ID")
            continue
        rows.append(row)

    return rows


def merge_rows(existing: List[List[str]], incoming: List[List[str]]) -> Dict:
    """Upsert incoming rows into existing rows by Unique ID (column 0)."""
    merged = [list(row) for row in existing]
    index = {row[0]: i for i, row in enumerate(merged)}
    replaced = appended = 0

    for row in incoming:
        if row[0] in index:
            merged[index[row[0]]] = row
            replaced += 1
        else:
            index[row[0]] = len(merged)
            merged.append(row)
            appended += 1

    return {'rows': merged, 'replaced': replaced, 'appended': appended}


def import_annotations(file_path: str, sheet_name: str, dry_run: bool = False) -> Dict:
    """
    Import annotations into the database configured in dashboard/config.ini.

    Returns:
        Dictionary with import results
    """
    from dashboard.settings import get_database_url
    from dashboard.logics.db import AnnotationDBManager

    print(f"\n{'='*60}")
    print(f"Annotation Import Script")
    print(f"{'='*60}")
    print(f"File: {file_path}")
    print(f"Dry run: {dry_run}")
    print(f"{'='*60}\n")

    print("Loading annotation rows...")
    incoming = load_annotation_rows(file_path, sheet_name)
    print(f"Found {len(incoming)} annotation rows\n")

    if not incoming:
        print("No annotations to import.")
        return {'total': 0, 'replaced': 0, 'appended': 0}

    print("Preview of first 5 annotations:")
    print("-" * 80)
    for i, row in enumerate(incoming[:5]):
        print(f"  {i+1}. {row[0][:40]:<40} | {row[1][:10]:<10} | tags: {row[5][:20]}")
    if len(incoming) > 5:
        print(f"  ... and {len(incoming) - 5} more")
    print("-" * 80)
    print()

    db_manager = AnnotationDBManager(get_database_url())
    result = merge_rows(db_manager.read_rows(), incoming)
    summary = {
        'total': len(incoming),
        'replaced': result['replaced'],
        'appended': result['appended'],
    }

    if dry_run:
        print("DRY RUN - No data was imported.")
        print(f"  Would replace: {summary['replaced']}")
        print(f"  Would append: {summary['appended']}")
        summary['dry_run'] = True
        return summary

    print("Importing data into database...")
    db_manager.replace_rows(result['rows'])

    print(f"\n{'='*60}")
    print("Import Results:")
    print(f"{'='*60}")
    print(f"  Total rows: {summary['total']}")
    print(f"  Replaced: {summary['replaced']}")
    print(f"  Appended: {summary['appended']}")
    print(f"  Rows in store: {db_manager.count()}")
    print(f"{'='*60}\n")

    return summary


def main():
    parser = argparse.ArgumentParser(
        description="Import member annotations into the database annotation store.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    parser.add_argument(
        '--file',
        type=str,
        required=True,
        help='Path to the .xlsx or .csv file'
    )
    parser.add_argument(
        '--sheet',
        type=str,
        default='Member_Annotations',
        help='Sheet name for Excel files (default: Member_Annotations)'
    )
    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Preview changes without importing'
    )

    args = parser.parse_args()

    try:
        import_annotations(
            file_path=args.file,
            sheet_name=args.sheet,
            dry_run=args.dry_run
        )
        sys.exit(0)

    except FileNotFoundError as e:
        print(f"ERROR: {e}")
        sys.exit(1)
    except ValueError as e:
        print(f"ERROR: {e}")
        sys.exit(1)
    except Exception as e:
        print(f"UNEXPECTED ERROR: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()

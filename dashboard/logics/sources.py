"""
Feed sources: where member rows and annotation rows come from.

Every source exposes the same three positional-row operations:

    fetch_member_rows()          -> rows (header first), raises FetchError
    fetch_annotation_rows()      -> rows (header first), raises
                                    AnnotationStoreNotFound when the store
                                    does not exist yet, FetchError otherwise
    write_annotation_rows(rows)  -> replaces the whole annotation table,
                                    raises WriteError

Columns are positional; reordering sheet columns breaks parsing silently.
"""

import logging
import os
from abc import ABC, abstractmethod
from threading import Lock
from typing import List, Optional, Sequence

import pandas as pd
from openpyxl import Workbook, load_workbook

from dashboard.logics.exceptions import (
    AnnotationStoreNotFound,
    FetchError,
    WriteError,
)

logger = logging.getLogger(__name__)

Rows = List[List[str]]


def _copy_rows(rows: Sequence[Sequence]) -> Rows:
    return [["" if value is None else str(value) for value in row] for row in rows]


class FeedSource(ABC):
    """Abstract member/annotation feed."""

    name = "source"

    @abstractmethod
    def fetch_member_rows(self) -> Rows:
        ...

    @abstractmethod
    def fetch_annotation_rows(self) -> Rows:
        ...

    @abstractmethod
    def write_annotation_rows(self, rows: Sequence[Sequence]) -> None:
        ...


class InMemorySource(FeedSource):
    """
    Feed held in memory; used by tests and demos.

    annotation_rows=None means the annotation store has not been created.
    The fail_* switches simulate transport failures.
    """

    name = "memory"

    def __init__(
        self,
        member_rows: Optional[Sequence[Sequence]] = None,
        annotation_rows: Optional[Sequence[Sequence]] = None
    ):
        self.member_rows = _copy_rows(member_rows or [])
        self.annotation_rows = _copy_rows(annotation_rows) if annotation_rows is not None else None
        self.fail_member_fetch = False
        self.fail_annotation_fetch = False
        self.fail_write = False
        self.write_count = 0
        self.lock = Lock()

    def fetch_member_rows(self) -> Rows:
        if self.fail_member_fetch:
            raise FetchError("member", "simulated transport failure")
        with self.lock:
            return _copy_rows(self.member_rows)

    def fetch_annotation_rows(self) -> Rows:
        if self.fail_annotation_fetch:
            raise FetchError("annotation", "simulated transport failure")
        with self.lock:
            if self.annotation_rows is None:
                raise AnnotationStoreNotFound("memory")
            return _copy_rows(self.annotation_rows)

    def write_annotation_rows(self, rows: Sequence[Sequence]) -> None:
        if self.fail_write:
            raise WriteError("simulated transport failure")
        with self.lock:
            self.annotation_rows = _copy_rows(rows)
            self.write_count += 1


class WorkbookSource(FeedSource):
    """
    Excel workbook with a member sheet and an annotation sheet.

    Reads go through pandas (all cells as strings, no header inference);
    writes go through openpyxl so the member sheet is left untouched. The
    annotation sheet is created on the first write.
    """

    name = "workbook"

    def __init__(self, path: str, member_sheet: str = "Expirations", annotation_sheet: str = "Member_Annotations"):
        self.path = path
        self.member_sheet = member_sheet
        self.annotation_sheet = annotation_sheet
        self.lock = Lock()

    def _read_sheet(self, sheet_name: str) -> Rows:
        df = pd.read_excel(self.path, sheet_name=sheet_name, header=None, dtype=str, engine="openpyxl")
        df = df.fillna("")
        return [[str(value) for value in row] for row in df.values.tolist()]

    def _sheet_names(self) -> List[str]:
        with pd.ExcelFile(self.path, engine="openpyxl") as workbook:
            return list(workbook.sheet_names)

    def fetch_member_rows(self) -> Rows:
        if not os.path.exists(self.path):
            raise FetchError("member", f"workbook not found: {self.path}")
        try:
            with self.lock:
                rows = self._read_sheet(self.member_sheet)
        except Exception as e:
            logger.error(f"[WorkbookSource] Error reading sheet {self.member_sheet}: {e}", exc_info=True)
            raise FetchError("member", str(e)) from e

        logger.info(f"[WorkbookSource] Read {len(rows)} rows from {self.member_sheet}")
        return rows

    def fetch_annotation_rows(self) -> Rows:
        if not os.path.exists(self.path):
            raise AnnotationStoreNotFound(self.path)
        try:
            with self.lock:
                if self.annotation_sheet not in self._sheet_names():
                    raise AnnotationStoreNotFound(f"{self.path}:{self.annotation_sheet}")
                rows = self._read_sheet(self.annotation_sheet)
        except AnnotationStoreNotFound:
            raise
        except Exception as e:
            logger.error(f"[WorkbookSource] Error reading sheet {self.annotation_sheet}: {e}", exc_info=True)
            raise FetchError("annotation", str(e)) from e
        return rows

    def write_annotation_rows(self, rows: Sequence[Sequence]) -> None:
        try:
            with self.lock:
                if os.path.exists(self.path):
                    workbook = load_workbook(self.path)
                else:
                    workbook = Workbook()
                    workbook.active.title = self.member_sheet

                if self.annotation_sheet in workbook.sheetnames:
                    index = workbook.sheetnames.index(self.annotation_sheet)
                    workbook.remove(workbook[self.annotation_sheet])
                    sheet = workbook.create_sheet(self.annotation_sheet, index)
                else:
                    sheet = workbook.create_sheet(self.annotation_sheet)

                for row in _copy_rows(rows):
                    sheet.append(row)

                workbook.save(self.path)
        except Exception as e:
            logger.error(f"[WorkbookSource] Error writing sheet {self.annotation_sheet}: {e}", exc_info=True)
            raise WriteError(str(e)) from e

        logger.info(f"[WorkbookSource] Wrote {len(rows)} rows to {self.annotation_sheet}")


class CompositeSource(FeedSource):
    """Member rows from one source, annotation rows from another."""

    def __init__(self, member_source: FeedSource, annotation_source: FeedSource):
        self.member_source = member_source
        self.annotation_source = annotation_source
        self.name = member_source.name

    def fetch_member_rows(self) -> Rows:
        return self.member_source.fetch_member_rows()

    def fetch_annotation_rows(self) -> Rows:
        return self.annotation_source.fetch_annotation_rows()

    def write_annotation_rows(self, rows: Sequence[Sequence]) -> None:
        self.annotation_source.write_annotation_rows(rows)

from typing import List, Optional, Sequence

from sqlalchemy import Column, DateTime, Integer, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel, Field, create_engine, select
from datetime import datetime

import logging
from dashboard.logics.types import TagList
from dashboard.logics.models import ANNOTATION_HEADERS
from dashboard.logics.sources import FeedSource, Rows
from dashboard.logics.exceptions import FetchError, WriteError
from dashboard.logics.annotation_store import parse_tags, serialize_tags
from dashboard.logics.row_parser import cell

logger = logging.getLogger(__name__)


class MemberAnnotationModel(SQLModel, table=True):
    """One annotation row; RowOrder keeps the feed order of the sheet layout."""
    __tablename__ = "member_annotations"

    id: int | None = Field(default=None, primary_key=True)

    RowOrder: int = Field(default=0, sa_column=Column(Integer, nullable=False, index=True))
    UniqueId: str = Field(index=True)
    MemberId: Optional[str] = None
    Email: Optional[str] = None
    Comments: Optional[str] = None
    Notes: Optional[str] = None
    Tags: List[str] = Field(default_factory=list, sa_column=Column(TagList))
    NoteDate: Optional[str] = None
    LastUpdated: Optional[str] = None
    PersistenceKey: Optional[str] = None

    CreatedDateTime: datetime = Field(
        sa_column=Column(DateTime, nullable=False, server_default=func.now())
    )
    UpdatedDateTime: datetime = Field(
        sa_column=Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())
    )


def model_to_row(record: MemberAnnotationModel) -> List[str]:
    return [
        record.UniqueId or "",
        record.MemberId or "",
        record.Email or "",
        record.Comments or "",
        record.Notes or "",
        serialize_tags(record.Tags or []),
        record.NoteDate or "",
        record.LastUpdated or "",
        record.PersistenceKey or "",
    ]


def row_to_model(row: Sequence, order: int) -> MemberAnnotationModel:
    return MemberAnnotationModel(
        RowOrder=order,
        UniqueId=cell(row, 0),
        MemberId=cell(row, 1),
        Email=cell(row, 2),
        Comments=cell(row, 3),
        Notes=cell(row, 4),
        Tags=parse_tags(cell(row, 5)),
        NoteDate=cell(row, 6),
        LastUpdated=cell(row, 7),
        PersistenceKey=cell(row, 8),
    )


class AnnotationDBManager:
    def __init__(self, database_url: str):
        """
        Initialize the manager and make sure the annotation table exists.

        Args:
            database_url (str): The database connection string.
        """
        connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
        self.engine = create_engine(database_url, connect_args=connect_args)
        SQLModel.metadata.create_all(bind=self.engine, tables=[MemberAnnotationModel.__table__])
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    def read_rows(self) -> Rows:
        """All annotation rows in sheet layout (no header), ordered by RowOrder."""
        session = self.SessionLocal()
        try:
            records = session.execute(
                select(MemberAnnotationModel).order_by(MemberAnnotationModel.RowOrder, MemberAnnotationModel.id)
            ).scalars().all()
            return [model_to_row(record) for record in records]
        finally:
            session.close()

    def replace_rows(self, rows: Sequence[Sequence]) -> int:
        """
        Replace the table contents with the given data rows (no header).
        Rolls back on failure and logs exception.
        """
        session = self.SessionLocal()
        try:
            deleted = session.query(MemberAnnotationModel).delete(synchronize_session=False)
            instances = [row_to_model(row, order) for order, row in enumerate(rows)]
            session.add_all(instances)
            session.commit()
            logger.info(f"[AnnotationDBManager] Replaced {deleted} rows with {len(instances)} rows.")
            return len(instances)
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"[AnnotationDBManager] Error during replace_rows. Rolled back. Error: {e}")
            raise
        finally:
            session.close()
            logger.debug("[AnnotationDBManager] Session closed.")

    def count(self) -> int:
        session = self.SessionLocal()
        try:
            return session.query(MemberAnnotationModel).count()
        finally:
            session.close()


class DatabaseAnnotationSource(FeedSource):
    """
    Annotation feed stored in the member_annotations table.

    Member rows are not kept in the database; combine with another source
    through CompositeSource.
    """

    name = "database"

    def __init__(self, db_manager: AnnotationDBManager):
        self.db_manager = db_manager

    def fetch_member_rows(self) -> Rows:
        raise FetchError("member", "the database source holds annotations only")

    def fetch_annotation_rows(self) -> Rows:
        try:
            rows = self.db_manager.read_rows()
        except SQLAlchemyError as e:
            logger.error(f"[DatabaseAnnotationSource] Read failed: {e}", exc_info=True)
            raise FetchError("annotation", str(e)) from e
        return [list(ANNOTATION_HEADERS)] + rows

    def write_annotation_rows(self, rows: Sequence[Sequence]) -> None:
        # First row is the header in sheet layout
        data_rows = [row for index, row in enumerate(rows) if index > 0]
        try:
            self.db_manager.replace_rows(data_rows)
        except SQLAlchemyError as e:
            raise WriteError(str(e)) from e

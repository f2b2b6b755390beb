# types.py

from typing import List, Optional

from sqlalchemy.types import TypeDecorator, Text

from dashboard.logics.models import TAG_DELIMITER


class TagList(TypeDecorator):
    """
    Store a list of tags as the ", "-delimited string used on the wire.
    Empty and whitespace-only tags are dropped on load.
    """
    impl = Text
    cache_ok = True

    def process_bind_param(self, value, dialect) -> Optional[str]:
        if value is None:
            return None
        if isinstance(value, str):
            return value
        if isinstance(value, (list, tuple)):
            return TAG_DELIMITER.join(str(tag) for tag in value)
        raise ValueError("Expected a list of tags")

    def process_result_value(self, value, dialect) -> List[str]:
        if not value:
            return []
        return [tag for tag in value.split(TAG_DELIMITER) if tag.strip()]

"""
Typed get/set over the device-local key-value table.

Reads never write: a missing or unparsable record yields the caller's default,
and the stored text is left as-is until the next explicit set().
"""
import copy
import json
import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple, TypeVar

from sqlalchemy import delete, or_, select

from iman.core.db import session_scope
from iman.core.models import Record

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _like_prefix(prefix: str) -> str:
    escaped = prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"{escaped}%"


class RecordStore:
    """Key-value records serialized as JSON text. No in-memory cache: every call hits the DB."""

    def get(self, key: str, default: T = None) -> T:
        with session_scope() as session:
            row = session.get(Record, key)
            raw = row.value if row is not None else None
        return self._parse(key, raw, default)

    def set(self, key: str, value: T) -> T:
        text = json.dumps(value, ensure_ascii=False)
        with session_scope() as session:
            row = session.get(Record, key)
            if row is None:
                session.add(Record(key=key, value=text))
            else:
                row.value = text
        return value

    def delete(self, key: str) -> bool:
        with session_scope() as session:
            result = session.execute(delete(Record).where(Record.key == key))
            return (result.rowcount or 0) > 0

    def exists(self, key: str) -> bool:
        with session_scope() as session:
            return session.get(Record, key) is not None

    def get_raw(self, key: str) -> Optional[str]:
        """Stored text as-is (used by sync and corruption diagnostics)."""
        with session_scope() as session:
            row = session.get(Record, key)
            return row.value if row is not None else None

    def keys(self, prefix: str = "") -> List[str]:
        with session_scope() as session:
            stmt = select(Record.key)
            if prefix:
                stmt = stmt.where(Record.key.like(_like_prefix(prefix), escape="\\"))
            return sorted(session.execute(stmt).scalars().all())

    def items(self, prefix: str = "", default: Any = None) -> List[Tuple[str, Any]]:
        """(key, parsed value) pairs for every key starting with prefix, sorted by key.
        Corrupted rows are reported with the default value."""
        with session_scope() as session:
            stmt = select(Record.key, Record.value).order_by(Record.key)
            if prefix:
                stmt = stmt.where(Record.key.like(_like_prefix(prefix), escape="\\"))
            rows = session.execute(stmt).all()
        return [(key, self._parse(key, raw, default)) for key, raw in rows]

    def clear(self, prefixes: Optional[Iterable[str]] = None, exact_keys: Iterable[str] = ()) -> int:
        """Delete every record, or only those named in exact_keys or starting with one of prefixes."""
        with session_scope() as session:
            stmt = delete(Record)
            if prefixes is not None:
                prefixes = list(prefixes)
                exact_keys = list(exact_keys)
                if not prefixes and not exact_keys:
                    return 0
                conditions = [Record.key.like(_like_prefix(p), escape="\\") for p in prefixes]
                if exact_keys:
                    conditions.append(Record.key.in_(exact_keys))
                stmt = stmt.where(or_(*conditions))
            result = session.execute(stmt)
            count = result.rowcount or 0
        logger.info(f"Cleared {count} records")
        return count

    def set_many(self, values: Dict[str, Any]) -> None:
        """Write several records in one transaction."""
        with session_scope() as session:
            for key, value in values.items():
                text = json.dumps(value, ensure_ascii=False)
                row = session.get(Record, key)
                if row is None:
                    session.add(Record(key=key, value=text))
                else:
                    row.value = text

    @staticmethod
    def _parse(key: str, raw: Optional[str], default: T) -> T:
        if raw is None:
            return copy.deepcopy(default)
        try:
            value = json.loads(raw)
        except (ValueError, TypeError) as e:
            logger.warning(f"Corrupted record {key!r}, using default: {e}")
            return copy.deepcopy(default)
        if value is None:
            return copy.deepcopy(default)
        return value

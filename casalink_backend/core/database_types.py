"""Custom database column types."""

import json
import uuid

from sqlalchemy import String, Text, TypeDecorator


class UUID(TypeDecorator):
    """UUID stored as CHAR(36).

    Works the same on MySQL and SQLite; converts between uuid.UUID and str.
    """

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        if isinstance(value, uuid.UUID):
            return str(value)
        return str(uuid.UUID(str(value)))

    def process_result_value(self, value, dialect):
        if value is None:
            return value
        if isinstance(value, str):
            return uuid.UUID(value)
        return value


class EmailList(TypeDecorator):
    """Sorted list of lower-cased emails serialized as a JSON array.

    Sorting on write keeps the stored value stable for set-valued columns.
    """

    impl = Text
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return json.dumps([])
        return json.dumps(sorted(set(value)))

    def process_result_value(self, value, dialect):
        if not value:
            return []
        return list(json.loads(value))

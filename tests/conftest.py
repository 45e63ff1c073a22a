import os
import sys
import pytest

# ensure workspace root is on sys.path so our application packages can be imported
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from engine.records import LogRecord, ResultSet


def _record(index, **attributes):
    attributes.setdefault("timestamp", f"2025-01-05T14:{index:02d}:00Z")
    return LogRecord(id=f"r{index}", attributes=attributes)


@pytest.fixture
def make_record():
    """Build a LogRecord; the timestamp defaults to minute ``index`` of 14:00."""
    return _record


@pytest.fixture
def make_page():
    """Build a ResultSet from attribute dicts, assigning ascending timestamps
    to any entry that does not carry one."""

    def build(*entries, cursor=None):
        return ResultSet(
            records=tuple(_record(i, **dict(e)) for i, e in enumerate(entries)),
            cursor=cursor,
        )

    return build

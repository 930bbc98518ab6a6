import pytest

from core.storage import SESSIONS
from skills.normalize import build_dataset


@pytest.fixture
def sales_dataset():
    return build_dataset(
        "sales.xlsx",
        ["Month", "Region", "Revenue", "Units"],
        [
            ["Jan", "North", 100, 10],
            ["Feb", "South", 200, 12],
            ["Mar", "North", 150, 9],
        ],
    )


@pytest.fixture(autouse=True)
def _clear_sessions():
    SESSIONS.clear()
    yield
    SESSIONS.clear()

import pytest

from tests.helpers import (
    PICKLEBALL_BLUE,
    SUMMER_HEADERS,
    TENNIS_GREEN,
    FakeClock,
    make_workbook_bytes,
)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def summer_workbook() -> bytes:
    return make_workbook_bytes(
        SUMMER_HEADERS,
        {
            (5, 3): ("Ro/Je/Lo/Ha", TENNIS_GREEN),
            (10, 26): ("Open Play", PICKLEBALL_BLUE),
        },
    )

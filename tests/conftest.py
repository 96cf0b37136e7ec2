from datetime import datetime

import pytest
import pytz


@pytest.fixture
def now():
    return pytz.UTC.localize(datetime(2026, 10, 1, 8, 0))

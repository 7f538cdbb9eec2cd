from datetime import datetime
from datetime import timedelta
from datetime import timezone

import pytest


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self):
        self.current = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self):
        return self.current

    def advance(self, **kwargs):
        self.current += timedelta(**kwargs)


@pytest.fixture
def clock():
    return ManualClock()

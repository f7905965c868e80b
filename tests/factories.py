"""Profile builders and fixed clock values shared by the test modules."""
import uuid
from datetime import date, datetime, timedelta, timezone

from mergemates.schemas.profile import Profile

NOW = datetime(2026, 6, 15, 12, 0, tzinfo=timezone.utc)

# Koramangala, Bengaluru
BLR_LAT, BLR_LON = 12.9352, 77.6245


def make_profile(**overrides) -> Profile:
    """A verified, complete profile with no optional scoring data.

    Tests add only the attributes they exercise.
    """
    data = {
        "id": uuid.uuid4(),
        "first_name": "Dev",
        "is_verified": True,
        "profile_complete": True,
        "profile_completion": 90,
        "last_active": NOW - timedelta(hours=2),
    }
    data.update(overrides)
    return Profile(**data)


def dob_for_age(age: int, today: date = NOW.date()) -> date:
    """A birth date giving exactly ``age`` on ``today`` (birthday earlier this year)."""
    return date(today.year - age, 1, 1)

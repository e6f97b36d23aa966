"""
Pytest configuration for front-desk tests
"""
import os
import sys
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest

# Ensure frontdesk is importable
sys.path.insert(0, str(Path(__file__).parent.parent))

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")


@pytest.fixture
def sample_booking_data():
    """Checked-in two-night stay in room 101"""
    return {
        "booking_id": 1,
        "booking_reference": "BK-0001",
        "status": "checked_in",
        "room_number": "101",
        "first_name": "Asha",
        "last_name": "Rao",
        "phone": "9876543210",
        "check_in_date": date(2024, 1, 8),
        "check_in_time": "12:00",
        "check_in_ampm": "PM",
        "check_out_date": date(2024, 1, 10),
        "check_out_time": "11:00",
        "check_out_ampm": "AM",
        "total_amount": Decimal("1000"),
        "paid_amount": Decimal("0"),
    }


@pytest.fixture
def make_booking(sample_booking_data):
    """Factory for booking read models with field overrides"""
    from frontdesk.schemas.booking import BookingRead

    def _make(**overrides):
        data = dict(sample_booking_data)
        data.update(overrides)
        return BookingRead(**data)

    return _make

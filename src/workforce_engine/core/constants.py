"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

from datetime import time
from decimal import Decimal

DEFAULT_LATE_THRESHOLD = time(9, 0)
DEFAULT_LATE_GRACE_MINUTES = 5
DEFAULT_STANDARD_HOURS_PER_DAY = 8
DEFAULT_HALF_DAY_FRACTION = 0.5

DEFAULT_ANNUAL_LEAVE_DAYS = 22

DEFAULT_MONTHLY_WORKING_DAYS = 22
DEFAULT_OVERTIME_MULTIPLIER = Decimal("1.5")

DEFAULT_LIST_LIMIT = 200
PENDING_BATCH_SIZE = 100

CENTS = Decimal("0.01")

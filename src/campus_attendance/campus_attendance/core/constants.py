"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

from decimal import Decimal

LOW_ATTENDANCE_THRESHOLD = Decimal("75.00")
PERCENT_QUANTUM = Decimal("0.01")
DEFAULT_REVIEW_MAX_RETRIES = 3
DEFAULT_LIST_LIMIT = 500

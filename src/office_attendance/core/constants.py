"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

from datetime import time

DEFAULT_SWEEP_TIME = time(4, 0)
DEFAULT_SCAN_HISTORY_SIZE = 10
DEFAULT_PORT = 8080

SWEEP_JOB_ID = "nightly-sweep"
# A sweep missed by more than this (host asleep at 04:00) is skipped until the next day.
SWEEP_MISFIRE_GRACE_SECONDS = 3600

SNAPSHOT_FILENAME = "current_attendees.json"
MEMBERS_EXPORT_FILENAME = "members.json"

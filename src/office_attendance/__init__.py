"""Office attendance tracker.

RFID scans toggle members in and out of the room. The presence engine keeps the
live "who is inside" map, completed visits go to the sessions table, and a
nightly sweep signs out anyone who forgot to scan on the way out.

The package is organized by feature modules (members, sessions, presence) with
thin Flask controllers on top of service/repository layers.
"""

__version__ = "1.0.0"

"""Camera color relay package.

This package contains modules for camera access, frame color averaging, the
send/auto-send dispatcher, persisted preferences, a background event-loop
service, and a Flask dashboard.
"""

# Nothing to export at package import time; modules provide the functionality.
__all__ = []

"""Application-level exception types.

Convention:
- ``ConfigError`` and ``WatchRegistrationError`` are startup-fatal. They are
  raised before the router and scheduler start; the CLI logs them at CRITICAL
  and exits with status 1.
- Nothing raised inside the running loops crosses this boundary. Notification
  errors, unattributed events and failed syncs are logged and the loop goes on.
"""

from __future__ import annotations


class AutorsyncError(Exception):
    """Base class for errors that abort startup."""


class ConfigError(AutorsyncError):
    """Raised when the configuration file is missing, malformed, or invalid."""


class WatchRegistrationError(AutorsyncError):
    """Raised when a mapping's source tree cannot be enumerated for watching.

    Running with partial coverage would silently miss changes, so the daemon
    stops instead.
    """

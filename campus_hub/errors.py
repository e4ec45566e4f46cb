"""
Exception hierarchy for Campus Hub.
"""


class CampusHubError(Exception):
    """Base class for application errors carrying an HTTP status."""

    status_code = 500

    def __init__(self, message, *, status_code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class EventNotFoundError(CampusHubError):
    status_code = 404


class NotificationDispatchError(CampusHubError):
    """The notification provider rejected or failed a trigger call."""

    status_code = 502


class StorageError(CampusHubError):
    """An object storage call failed."""

    status_code = 502

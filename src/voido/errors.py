class VoidoError(Exception):
    """Base class for every error voido reports to the user."""


class ValidationError(VoidoError):
    """Bad user input (priority, status, subtask spec, due date); nothing was written."""


class NotFoundError(VoidoError):
    """The task or subtask id named by an update or delete does not exist."""


class StoreError(VoidoError):
    """The database rejected or failed a statement; the cache was left untouched."""


class StartupError(VoidoError):
    """The home directory or database could not be created or opened."""

"""
Duplicate Engine Exceptions

Precondition errors are raised before any store call is made, so
nothing has been deleted when one of them surfaces. Per-record delete
failures are NOT exceptions at this level: the reconciler collects
them into its summary.
"""


class DuplicateEngineError(Exception):
    """Base exception for the duplicate engine."""
    pass


class PreconditionError(DuplicateEngineError):
    """An operation was refused before it touched the store."""
    pass


class NotAuthenticatedError(PreconditionError):
    """Cleanup requested with nobody signed in."""
    pass


class MissingKeeperError(PreconditionError):
    """A group reached the reconciler without a valid keeper."""
    pass


class KindMismatchError(PreconditionError):
    """A group of one kind was passed to a cleanup of another kind."""
    pass


class NoAnalysisError(PreconditionError):
    """Cleanup or keeper change requested before any analysis ran."""
    pass


class StaleGroupsError(PreconditionError):
    """The groups on hand no longer match the store; analyze again first."""
    pass


class InvalidKeeperError(DuplicateEngineError):
    """The chosen keeper is not a member of the group."""
    pass


class UnknownGroupError(DuplicateEngineError):
    """No group with the given key exists."""
    pass


class SessionBusyError(DuplicateEngineError):
    """An analysis or cleanup is already running."""
    pass


class AnalysisError(DuplicateEngineError):
    """Record collections could not be read."""
    pass

"""Custom exceptions for State Store."""


class StateStoreError(Exception):
    """Base exception for State Store errors."""


class ProjectNotFoundError(StateStoreError):
    """Project with given ID does not exist."""


class SnapshotError(StateStoreError):
    """Snapshot could not be written to disk."""

"""Exceptions for the Supervisor module."""


class SupervisorError(Exception):
    """Base exception for supervisor errors."""

    pass


class ProjectAlreadyRunningError(SupervisorError):
    """A run is already in flight for this project."""

    pass


class ActionsDisabledError(SupervisorError):
    """Starting project pipelines is disabled by configuration."""

    pass

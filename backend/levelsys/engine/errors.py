"""
Engine error kinds. Every one of them is raised before any mutation happens,
so callers can report the message and keep using the same state.
"""


class EngineError(Exception):
    status_code = 400


class ValidationError(EngineError):
    status_code = 422


class DuplicateError(EngineError):
    status_code = 409


class LastStatError(EngineError):
    status_code = 409


class GatingError(EngineError):
    status_code = 403


class NotFoundError(EngineError):
    status_code = 404

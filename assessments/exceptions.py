"""
Errors raised by the exam session engine.

Each carries the HTTP status the API layer answers with; see
``cbt_platform.exception_handler``.
"""


class SessionEngineError(Exception):
    status_code = 400
    code = "error"
    default_message = "The operation could not be completed."

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFound(SessionEngineError):
    status_code = 404
    code = "not_found"
    default_message = "Not found."


class InvalidState(SessionEngineError):
    status_code = 400
    code = "invalid_state"
    default_message = "The exam or session is not in a state that allows this."


class SessionExpired(InvalidState):
    code = "session_expired"
    default_message = "The time allowed for this exam has run out."


class AlreadyCompleted(SessionEngineError):
    status_code = 409
    code = "already_completed"
    default_message = "You have already completed this exam."


class ValidationError(SessionEngineError):
    status_code = 400
    code = "validation_error"
    default_message = "Invalid input."


class Forbidden(SessionEngineError):
    status_code = 403
    code = "forbidden"
    default_message = "This session does not belong to you."

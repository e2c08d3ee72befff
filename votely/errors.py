# votely/errors.py
# Error taxonomy shared by the core and the HTTP layer.
# Each error carries the HTTP status it is reported with.


class VotelyError(Exception):
    status_code = 500
    default_message = "Internal Server Error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(VotelyError):
    status_code = 400
    default_message = "Please provide all required fields"


class NotFoundError(VotelyError):
    status_code = 404
    default_message = "Resource not found"


class CandidateNotInElectionError(NotFoundError):
    default_message = "Candidate not found in this election"


class ConflictError(VotelyError):
    status_code = 400
    default_message = "Operation not allowed in the current state"


class ElectionNotOngoingError(ConflictError):
    default_message = "Election is not currently active"


class AlreadyVotedError(ConflictError):
    default_message = "You have already voted in this election"


class DuplicateRecordError(ConflictError):
    status_code = 409
    default_message = "Record already exists"


class AuthorizationError(VotelyError):
    status_code = 403
    default_message = "Not authorized to perform this action"


class AuthenticationError(VotelyError):
    status_code = 401
    default_message = "Not authorized to access this route"


class InternalError(VotelyError):
    pass

# app/core/exceptions.py - Domain errors raised by services and mapped to HTTP errors by routers


class InterviewError(Exception):
    """Base class for interview domain errors"""


class QuestionSourceError(InterviewError):
    """No question could be produced for the requested slot"""


class SummaryError(InterviewError):
    """The performance summary could not be generated"""


class InvalidTokenError(InterviewError):
    """Interview token is unknown or has already been used"""


class TokenAlreadyIssued(InterviewError):
    """A token already exists for this email"""


class CandidateNotFound(InterviewError):
    """No candidate record with the given id"""


class InvalidTransition(InterviewError):
    """Operation is not allowed in the candidate's current interview status"""


class DomainNotAllowed(InterviewError):
    """Email domain is not on the interviewer allow-list"""

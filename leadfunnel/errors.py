"""Funnel exceptions."""


class FunnelError(Exception):
    """Base class for errors the funnel surfaces to its callers."""


class SubmissionValidationError(FunnelError):
    """
    Submission halted before delivery.
    The message is safe to show to the visitor.
    """

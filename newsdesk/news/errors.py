"""
Newsdesk error taxonomy.

Editorial rejections are not errors: they come back as a Rejected decision.
"""


class NewsdeskError(Exception):
    """Base class for newsdesk failures."""


class SubmissionValidationError(NewsdeskError, ValueError):
    """Intake fields are missing or out of range; nothing was persisted."""

    def __init__(self, errors):
        self.errors = dict(errors)
        message = '; '.join(f"{field}: {msg}" for field, msg in self.errors.items())
        super().__init__(message or 'Invalid submission')


class SubmissionAlreadyProcessed(NewsdeskError, ValueError):
    """The submission already left pending; the store is consistent."""

    def __init__(self, submission_id, status):
        self.submission_id = submission_id
        self.status = status
        super().__init__(f"Submission {submission_id} is already {status}")


class StorageFailure(NewsdeskError):
    """The durable store is unavailable or holds corrupt data."""


class ServiceUnavailable(NewsdeskError):
    """The remote moderation service failed. Always recovered by fallback."""


class PipelineError(NewsdeskError):
    """Base class for failures after a moderation decision was made."""


class InconsistentStateError(PipelineError):
    """
    A decision was made but its outcome could not be persisted.

    The submission stays pending in the store; callers can retry with
    PublicationPipeline.reprocess().
    """

    def __init__(self, submission_id, decision, cause=None):
        self.submission_id = submission_id
        self.decision = decision
        self.cause = cause
        super().__init__(
            f"Submission {submission_id} was moderated ({decision.status}) "
            f"but the outcome could not be stored: {cause}"
        )

class PipelineError(Exception):
    """Base exception for document pipeline errors."""


class PipelineBusyError(PipelineError):
    """Raised when an operation needs the pipeline idle but a batch is running."""


class InvalidTransitionError(PipelineError):
    """Raised when a document is moved to a status its current status forbids."""

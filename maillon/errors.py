class InvalidInputError(ValueError):
    """Raised when a document, a configuration value or a chain set is
    malformed.  Nothing is processed when this is raised."""

    pass


class ScorerFailureError(RuntimeError):
    """Raised when an external scorer fails or returns a non-finite
    score.

    The original exception, if any, is available as ``__cause__``.
    """

    def __init__(self, message: str, scorer: object = None) -> None:
        super().__init__(message)
        self.scorer = scorer

class RecommendationError(Exception):
    """Raised when scheme recommendations cannot be generated or parsed."""

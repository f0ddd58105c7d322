"""Custom exception classes for the trend pipeline."""

from typing import Any


class TrendPipeError(Exception):
    """Base exception for all pipeline errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


# External API Errors
class ExternalAPIError(TrendPipeError):
    """Error calling an external source."""

    def __init__(self, api_name: str, message: str) -> None:
        self.api_name = api_name
        super().__init__(f"{api_name} API error: {message}")


class RateLimitExceededError(ExternalAPIError):
    """Rate limit exceeded for external API."""

    def __init__(self, api_name: str) -> None:
        super().__init__(api_name, "Rate limit exceeded")


class APIKeyMissingError(ExternalAPIError):
    """API key not configured."""

    def __init__(self, api_name: str) -> None:
        super().__init__(api_name, "API key not configured")


class CompletionError(TrendPipeError):
    """The completion service failed to return text."""

    pass


# Data Errors
class TopicNotFoundError(TrendPipeError):
    """Topic not found."""

    def __init__(self, topic_id: str) -> None:
        super().__init__(f"Topic not found: {topic_id}")


class ArticleNotFoundError(TrendPipeError):
    """Article not found."""

    def __init__(self, article_id: str) -> None:
        super().__init__(f"Article not found: {article_id}")


class SourceNotFoundError(TrendPipeError):
    """Trend source not found."""

    def __init__(self, source_id: str) -> None:
        super().__init__(f"Source not found: {source_id}")


# Workflow Errors
class InvalidTopicTransitionError(TrendPipeError):
    """Topic status does not allow the requested transition."""

    def __init__(self, topic_id: str, current: str, target: str) -> None:
        super().__init__(
            f"Topic {topic_id} cannot move from {current} to {target}",
            details={"topic_id": topic_id, "current": current, "target": target},
        )


class SlugCollisionError(TrendPipeError):
    """No free slug could be derived from the requested base slug."""

    def __init__(self, base_slug: str) -> None:
        super().__init__(f"Unable to generate unique slug for: {base_slug}")


class ArticleGenerationError(TrendPipeError):
    """The completion service returned no usable article."""

    pass

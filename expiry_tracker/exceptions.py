"""Exceptions raised by the recipe suggestion engine.

Delivery failures are reported as values (see ``PushResult``) and
persistence failures are only logged, so neither has an exception here.
"""


class RecipeSuggestionError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class Unauthorized(RecipeSuggestionError):
    """Missing or invalid credential."""

    status_code = 401


class Forbidden(RecipeSuggestionError):
    """Valid credential of the wrong kind for the operation."""

    status_code = 403


class RateLimited(RecipeSuggestionError):
    """The user has used up today's on-demand suggestions."""

    status_code = 429


class UpstreamQueryFailure(RecipeSuggestionError):
    """Reading from the item store failed."""


class ProviderError(RecipeSuggestionError):
    """The AI provider call failed or returned unusable output."""


class ProviderRequestError(ProviderError):
    """The provider could not be reached or rejected the request."""


class ProviderEmptyResponse(ProviderError):
    """The provider completed but no text could be recovered."""

    def __init__(self, status: str | None, error_detail: str | None, output_info: str) -> None:
        super().__init__(
            f"Provider returned empty content. Status: {status}, "
            f"error: {error_detail}, output length: {output_info}"
        )
        self.status = status
        self.error_detail = error_detail


class ProviderMalformedOutput(ProviderError):
    """The recovered text is not valid JSON."""

    def __init__(self, raw_text: str) -> None:
        self.raw_preview = raw_text[:200]
        super().__init__(f"Failed to parse provider response as JSON: {self.raw_preview}")


class ProviderInvalidShape(ProviderError):
    """The parsed JSON does not contain a usable recipes array."""

    def __init__(
        self, message: str = "Provider response did not contain a valid recipes array"
    ) -> None:
        super().__init__(message)

"""Exceptions raised by the plan pipeline and its provider clients."""


class TastePlansError(Exception):
    """Base class for service errors."""


class InvalidPlanRequest(TastePlansError):
    """A plan request is missing a required field."""


class SuggestionGenerationError(TastePlansError):
    """The generative provider failed or returned nothing usable."""


class ProviderError(TastePlansError):
    """An external provider answered with an error status."""

    def __init__(self, provider: str, message: str):
        super().__init__(f"{provider}: {message}")
        self.provider = provider

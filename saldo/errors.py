"""Error taxonomy shared by services, reports and the prompt gateway."""


class SaldoError(Exception):
    pass


class ValidationError(SaldoError):
    """Malformed or out-of-range input, e.g. an inverted date range."""


class EmptyPromptError(ValidationError):
    def __init__(self, message: str = "Prompt is empty after sanitization"):
        super().__init__(message)


class AuthorizationError(SaldoError):
    """Missing or mismatched user identity."""


class NotFoundError(SaldoError):
    """Referenced entity is absent or owned by another user."""


class UpstreamProviderError(SaldoError):
    """The completion provider failed. Recovered locally by the fallback."""


class PersistenceError(SaldoError):
    """A read from the data layer failed."""

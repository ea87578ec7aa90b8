from __future__ import annotations

from enum import StrEnum


class ProviderErrorKind(StrEnum):
    NOT_CONFIGURED = "not_configured"
    RATE_LIMITED = "rate_limited"
    UNAVAILABLE = "unavailable"
    MALFORMED_RESPONSE = "malformed_response"
    OTHER = "other"


RETRYABLE_KINDS: frozenset[ProviderErrorKind] = frozenset(
    {ProviderErrorKind.RATE_LIMITED, ProviderErrorKind.UNAVAILABLE}
)


def is_retryable(kind: ProviderErrorKind) -> bool:
    return kind in RETRYABLE_KINDS


def classify_status(status_code: int) -> ProviderErrorKind:
    if status_code == 429:
        return ProviderErrorKind.RATE_LIMITED
    if status_code in (503, 529):
        return ProviderErrorKind.UNAVAILABLE
    return ProviderErrorKind.OTHER


class OrchestratorError(Exception):
    """Base class for every error raised by this package."""


class ProviderError(OrchestratorError):
    def __init__(
        self,
        message: str,
        kind: ProviderErrorKind = ProviderErrorKind.OTHER,
        provider: str | None = None,
        model: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.provider = provider
        self.model = model
        self.status_code = status_code

    @property
    def retryable(self) -> bool:
        return is_retryable(self.kind)

    def __repr__(self) -> str:
        return (
            f"ProviderError({str(self)!r}, kind={self.kind.value}, "
            f"provider={self.provider!r}, model={self.model!r})"
        )


class NoProvidersAvailableError(OrchestratorError):
    def __init__(self, message: str = "No AI providers available. Please configure API keys.") -> None:
        super().__init__(message)


class UnknownModelError(OrchestratorError):
    def __init__(self, model_key: str) -> None:
        super().__init__(f"Unknown model: {model_key}")
        self.model_key = model_key


class ClassifierParseError(OrchestratorError):
    pass

"""LiteLLM client wrapper: retries, API key validation, error classification.

All embedding + completion calls in the indexer and the query pipeline route
through this module. LiteLLM's built-in retry is used (num_retries=3,
exponential backoff). Any failure at the service boundary is re-raised as a
``ServiceError`` carrying one of four categories, so callers can show the
user an actionable message without inspecting provider-specific exceptions.
"""

from __future__ import annotations

import os
from enum import Enum

import litellm

# Disable LiteLLM verbose logging unless explicitly enabled
litellm.suppress_debug_info = True
litellm.set_verbose = False  # type: ignore[assignment]


# ------------------------------------------------------------------
# Error taxonomy
# ------------------------------------------------------------------


class ServiceErrorKind(str, Enum):
    MISSING_CREDENTIAL = "missing_credential"
    QUOTA = "quota"
    RATE_LIMIT = "rate_limit"
    GENERIC = "generic"


class ServiceError(RuntimeError):
    """An embedding or completion call failed.

    Attributes:
        kind: Category used for user messaging.
        detail: Underlying error text.
    """

    def __init__(self, kind: ServiceErrorKind, detail: str) -> None:
        super().__init__(detail)
        self.kind = kind
        self.detail = detail

    @property
    def user_message(self) -> str:
        return user_message(self.kind, self.detail)


def classify_error(exc: BaseException) -> ServiceErrorKind:
    """Map a provider exception onto the service error categories.

    Quota is checked before rate limit: providers report an exhausted quota
    as HTTP 429 with 'quota' or 'billing' in the message.
    """
    if isinstance(exc, ServiceError):
        return exc.kind
    text = str(exc).lower()
    if isinstance(exc, litellm.AuthenticationError) or "api key" in text or "api_key" in text:
        return ServiceErrorKind.MISSING_CREDENTIAL
    if "quota" in text or "billing" in text:
        return ServiceErrorKind.QUOTA
    if isinstance(exc, litellm.RateLimitError) or "rate limit" in text:
        return ServiceErrorKind.RATE_LIMIT
    return ServiceErrorKind.GENERIC


def user_message(kind: ServiceErrorKind, detail: str = "") -> str:
    """Return a one-line, user-facing explanation for *kind*."""
    if kind is ServiceErrorKind.MISSING_CREDENTIAL:
        return "API key not configured. Set the provider's API key environment variable."
    if kind is ServiceErrorKind.QUOTA:
        return "API quota exceeded. Check the billing settings of your model provider."
    if kind is ServiceErrorKind.RATE_LIMIT:
        return "Rate limit exceeded. Please wait a moment and try again."
    return detail or "Unknown error occurred."


# ------------------------------------------------------------------
# Provider → env var mapping for API key validation
# ------------------------------------------------------------------

_PROVIDER_ENV: dict[str, str | None] = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "azure": "AZURE_API_KEY",
    "cohere": "COHERE_API_KEY",
    "gemini": "GEMINI_API_KEY",
    "mistral": "MISTRAL_API_KEY",
    "voyage": "VOYAGE_API_KEY",
    "ollama": None,  # Local, no key required
    "ollama_chat": None,
}


def validate_api_key(model: str) -> None:
    """Check that the required API key env var is set for *model*.

    Raises:
        ServiceError: kind ``missing_credential`` if the key is absent.
    """
    provider = model.split("/")[0].lower() if "/" in model else "openai"
    env_var = _PROVIDER_ENV.get(provider, f"{provider.upper()}_API_KEY")

    if env_var is None:
        return

    if not os.getenv(env_var):
        raise ServiceError(
            ServiceErrorKind.MISSING_CREDENTIAL,
            f"API key not found for provider '{provider}'. "
            f"Set the {env_var} environment variable.",
        )


# ------------------------------------------------------------------
# Calls
# ------------------------------------------------------------------


def complete(
    model: str,
    messages: list[dict],
    max_tokens: int = 1500,
    temperature: float = 0.2,
    num_retries: int = 3,
) -> str:
    """Call litellm.completion() with retry/backoff. Returns content string.

    Raises:
        ServiceError: On any provider failure after retries.
    """
    try:
        response = litellm.completion(
            model=model,
            messages=messages,
            max_tokens=max_tokens,
            temperature=temperature,
            num_retries=num_retries,
        )
    except Exception as exc:
        raise ServiceError(classify_error(exc), str(exc)) from exc
    return response.choices[0].message.content or ""


def embed(
    model: str,
    text: str,
    max_chars: int | None = None,
    num_retries: int = 3,
) -> list[float]:
    """Call litellm.embedding() with retry/backoff. Returns the embedding vector.

    Args:
        model: LiteLLM embedding model string (provider/model format).
        text: Text to embed.
        max_chars: Clip *text* to this many characters before sending.
        num_retries: Number of retries on transient errors.

    Raises:
        ServiceError: On any provider failure after retries.
    """
    if max_chars is not None:
        text = text[:max_chars]
    try:
        response = litellm.embedding(
            model=model,
            input=[text],
            num_retries=num_retries,
        )
    except Exception as exc:
        raise ServiceError(classify_error(exc), str(exc)) from exc
    return list(response.data[0]["embedding"])

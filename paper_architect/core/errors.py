"""Error taxonomy. Any of these aborts the current generation call; there is no retry here."""

from __future__ import annotations


class PaperArchitectError(Exception):
    """Base class for all errors raised by paper_architect."""


class TransportError(PaperArchitectError):
    """Response body is absent or failed while being read."""


class ProviderHTTPError(PaperArchitectError):
    """Provider answered with a non-2xx status before streaming began."""

    def __init__(self, status_code: int, body: str, provider: str = "") -> None:
        self.status_code = status_code
        self.body = body
        self.provider = provider
        label = f"{provider} API error" if provider else "API error"
        super().__init__(f"{label}: {status_code} - {body}")


class ProtocolParseError(PaperArchitectError):
    """Malformed data line. Never raised by the adapters: such lines are dropped."""


class StorageError(PaperArchitectError):
    """Record store unreachable or returned an unreadable record."""


class InputError(PaperArchitectError):
    """A user-supplied file is missing, unreadable or not a valid document."""


class MissingCredentialError(PaperArchitectError):
    """No API key configured for the selected endpoint."""

    def __init__(self, base_url: str) -> None:
        self.base_url = base_url
        super().__init__(
            f"API key for '{base_url}' is not set. Use `paper-architect settings --api-key ...` or LLM_API_KEY."
        )

from __future__ import annotations


class ErrorCode:
    """Stable error codes reported in ProviderResponse and ClassificationResult."""

    NOT_CONFIGURED = "NOT_CONFIGURED"
    NO_MODEL = "NO_MODEL"
    INVALID_MODEL = "INVALID_MODEL"
    UNKNOWN_PROVIDER = "UNKNOWN_PROVIDER"
    PROVIDER_UNAVAILABLE = "PROVIDER_UNAVAILABLE"
    AI_UNAVAILABLE = "AI_UNAVAILABLE"
    TRANSPORT_ERROR = "TRANSPORT_ERROR"
    CIRCUIT_OPEN = "CIRCUIT_OPEN"
    PARSE_ERROR = "PARSE_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    MODEL_NOT_AVAILABLE = "MODEL_NOT_AVAILABLE"

    @staticmethod
    def http(status_code: int) -> str:
        return f"HTTP_{status_code}"

def is_transient_error(error_code: str | None) -> bool:
    """True for codes that describe an unhealthy remote endpoint."""

    if not error_code:
        return False
    if error_code == ErrorCode.TRANSPORT_ERROR:
        return True
    if error_code.startswith("HTTP_"):
        status = error_code[len("HTTP_"):]
        return status == "429" or status.startswith("5")
    return False

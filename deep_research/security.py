import re


def redact_secrets(text: str) -> str:
    """Redact API keys and bearer tokens from log lines and error strings."""
    if not isinstance(text, str):
        return text

    redacted = text

    # Query params like key= (YouTube), api_key=, token=
    redacted = re.sub(r"(?i)\b(api[_-]?key|key|token|secret)=([^&\s]+)", r"\1=***REDACTED***", redacted)

    # Authorization: Bearer <token> (xAI) and x-api-key: <token> (Anthropic)
    redacted = re.sub(r"(?i)Bearer\s+[A-Za-z0-9._\-]+", "Bearer ***REDACTED***", redacted)
    redacted = re.sub(r"(?i)x-api-key:\s*[A-Za-z0-9._\-]+", "x-api-key: ***REDACTED***", redacted)

    # Raw provider keys that leak into exception messages
    redacted = re.sub(r"\b(sk-ant-|xai-)[A-Za-z0-9_\-]+", r"\1***REDACTED***", redacted)

    return redacted


def is_configured_key(value) -> bool:
    """Return True if a credential is present and not a template placeholder."""
    if not value:
        return False
    s = str(value).strip()
    if not s:
        return False
    return ("YOUR_" not in s) and ("your_" not in s)

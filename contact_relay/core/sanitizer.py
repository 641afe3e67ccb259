import re

_EMAIL_RE = re.compile(r"[\w.+-]+@[\w.-]+\.\w+")
_IPV4_RE = re.compile(r"\b(\d{1,3}\.\d{1,3}\.\d{1,3}\.)\d{1,3}\b")
_SECRET_RE = re.compile(
    r'(password|passwd|pwd|pass|secret)["\']?\s*[:=]\s*["\']?[^"\'&\s]+',
    flags=re.IGNORECASE,
)


def redact_pii(message: str) -> str:
    """Redact personally identifiable information from log messages.

    Masks submitter emails, client IPv4 addresses and credential-looking
    ``key=value`` pairs before they reach the log sink.
    """
    if not isinstance(message, str):
        return str(message)

    # Emails: user@example.com -> u***@example.com
    message = _EMAIL_RE.sub(
        lambda m: m.group()[0] + "***@" + m.group().split("@")[1],
        message,
    )

    # IPs (IPv4): 192.168.1.100 -> 192.168.1.***
    message = _IPV4_RE.sub(r"\1***", message)

    message = _SECRET_RE.sub(r"\1=[REDACTED]", message)

    return message

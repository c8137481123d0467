import re
from urllib.parse import urlparse

from app.models.requests import CaptureRequest

PRIVATE_IP_PATTERNS = [
    re.compile(r"^127\."),
    re.compile(r"^10\."),
    re.compile(r"^172\.(1[6-9]|2[0-9]|3[0-1])\."),
    re.compile(r"^192\.168\."),
    re.compile(r"^0\."),
    re.compile(r"^169\.254\."),
    re.compile(r"^::1$"),
    re.compile(r"^fc00:", re.IGNORECASE),
    re.compile(r"^fe80:", re.IGNORECASE),
]

BLOCKED_HOSTNAMES = {
    "localhost",
    "metadata.google.internal",
    "metadata",
    "kubernetes.default",
    "kubernetes.default.svc",
}

PRIVATE_RESOURCE = "Access to internal or private resources is not allowed."


def validate_url(url_string: str) -> tuple[bool, str | None]:
    """Validate a URL for SSRF protection. Returns (is_valid, reason)."""
    try:
        parsed = urlparse(url_string)
    except ValueError:
        return False, "Invalid URL format."

    if parsed.scheme not in ("http", "https"):
        return False, f"Protocol '{parsed.scheme}' is not allowed. Only http and https are permitted."

    hostname = (parsed.hostname or "").lower()
    if not hostname:
        return False, "URL has no host."

    if hostname in BLOCKED_HOSTNAMES or hostname.endswith((".internal", ".local", ".localhost")):
        return False, PRIVATE_RESOURCE

    if any(pattern.search(hostname) for pattern in PRIVATE_IP_PATTERNS):
        return False, PRIVATE_RESOURCE

    if parsed.username or parsed.password:
        return False, "URLs with embedded credentials are not allowed."

    # Decimal IP (e.g., http://2130706433)
    if re.match(r"^\d+$", hostname):
        return False, "Numeric IP addresses are not allowed."

    # Octal IP
    if re.match(r"^0[0-7]+\.", hostname):
        return False, "Octal IP addresses are not allowed."

    # Hex IP
    if re.match(r"^0x[0-9a-f]+", hostname):
        return False, "Hexadecimal IP addresses are not allowed."

    return True, None


def validate_capture_request(request: CaptureRequest) -> tuple[bool, str | None]:
    """Check every URL the browser will be told to fetch.

    Inline markup loads through a synthetic localhost navigation that never
    reaches the network, so only a real ``url`` is checked for the document.
    """
    urls = [request.url] if request.url is not None else []
    urls += [tag.url for tag in (*request.addStyleTag, *request.addScriptTag) if tag.url]

    for url in urls:
        valid, reason = validate_url(url)
        if not valid:
            return False, f"{url}: {reason}"

    if any(tag.path for tag in (*request.addStyleTag, *request.addScriptTag)):
        return False, "Injecting tags from server-side paths is not allowed."

    return True, None

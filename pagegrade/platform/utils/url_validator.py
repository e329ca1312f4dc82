from typing import Optional, Tuple
from urllib.parse import urlparse


def normalize_url(url: str) -> Tuple[str, bool]:

    url = url.strip()

    parsed = urlparse(url)

    if not parsed.scheme:
        normalized = f"https://{url}"
        return normalized, True

    return url, False


def validate_url(url: Optional[str]) -> Tuple[bool, str, str]:
    if not url or not url.strip():
        return False, "", "URL is required"

    normalized_url, was_modified = normalize_url(url)

    try:
        parsed = urlparse(normalized_url)

        if parsed.scheme not in ['http', 'https']:
            return False, normalized_url, f"Invalid URL scheme: {parsed.scheme} (must be http or https)"

        if not parsed.netloc or not parsed.hostname:
            return False, normalized_url, "Invalid URL format: missing domain"

        if any(ch.isspace() for ch in normalized_url):
            return False, normalized_url, "Invalid URL format: contains whitespace"

        # Touch the port so malformed values ("host:abc") raise here
        parsed.port

        return True, normalized_url, ""

    except ValueError as e:
        return False, normalized_url, f"URL parsing error: {str(e)}"

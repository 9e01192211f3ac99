"""Custom validation utilities."""

from urllib.parse import urlparse


def is_evidence_url(url: str) -> bool:
    """Check an evidence reference is an absolute http(s) URL.

    Evidence is uploaded to the media store before a dispute is filed; the
    store hands back a stable URL, and only those are accepted here.

    Args:
        url: Reference returned by the media store

    Returns:
        bool: True if the reference looks like a stored upload
    """
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def clean_evidence_urls(urls: list[str] | None) -> tuple[list[str], list[str]]:
    """Split evidence references into (usable, malformed), dropping blanks.

    Order is preserved and duplicates are removed.
    """
    usable: list[str] = []
    malformed: list[str] = []
    for raw in urls or []:
        url = (raw or "").strip()
        if not url:
            continue
        if not is_evidence_url(url):
            malformed.append(url)
        elif url not in usable:
            usable.append(url)
    return usable, malformed

"""HTTP client construction shared by the pipeline services and the API."""

import httpx

# Browser-like headers; the watch page serves a stripped document to bare clients.
BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": (
        "text/html,application/xhtml+xml,application/xml;q=0.9,"
        "image/webp,*/*;q=0.8"
    ),
    "Accept-Language": "ko-KR,ko;q=0.9,en;q=0.8",
}


def get_http_client(timeout_seconds: float = 30.0) -> httpx.AsyncClient:
    """Create the async HTTP client used for every upstream call of a run.

    Args:
        timeout_seconds: Per-request deadline applied to connect, read and write.

    Returns:
        AsyncClient with browser headers and redirect following enabled.
        The caller owns the client and must close it with aclose().

    Examples:
        >>> client = get_http_client(10.0)
        >>> # ... await client.get(...)
        >>> # await client.aclose()
    """
    return httpx.AsyncClient(
        headers=BROWSER_HEADERS,
        timeout=httpx.Timeout(timeout_seconds),
        follow_redirects=True,
    )

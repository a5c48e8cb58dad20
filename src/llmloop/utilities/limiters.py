import logging
from typing import Mapping

logger = logging.getLogger(__name__)

RESET_HEADERS = ("Retry-After", "X-RateLimit-Reset")


def retry_after_ms(headers: Mapping[str, str], default_seconds: float = 2.0) -> float:
    """Read the anticipated wait time from the headers of a 429 too many requests http response.

    `Retry-After` is preferred over `X-RateLimit-Reset`; both are read as seconds.
    Unparseable or missing values fall back to `default_seconds`.

    Returns
    -------
    float
        Milliseconds until the rate limit resets.
    """
    lowered = {k.lower(): v for k, v in headers.items()}
    for header in RESET_HEADERS:
        value = lowered.get(header.lower())
        if not value:
            continue
        try:
            return float(value) * 1000
        except (TypeError, ValueError):
            logger.debug(f"Ignoring unparseable {header} header: {value!r}")
    return default_seconds * 1000

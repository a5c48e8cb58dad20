from __future__ import annotations

import json
import logging
from typing import Any

from ..core.exceptions import BackendError, RateLimitError
from ..types.openai_compat import error_detail
from ..utilities.http import TransportResponse
from ..utilities.limiters import retry_after_ms

logger = logging.getLogger(__name__)

HTTP_OK = 200
HTTP_TOO_MANY_REQUESTS = 429


def check_response(response: TransportResponse) -> Any:
    """Decode a successful JSON response; map throttling and failures to exceptions.

    Raises
    ------
    RateLimitError
        On HTTP 429, carrying the reset delay from the response headers.
    BackendError
        On any other non-200 status, or a body that is not JSON.
    """
    logger.debug(f"status = {response.status}")
    logger.debug(f"Response: {response.body}")

    if response.status == HTTP_TOO_MANY_REQUESTS:
        raise RateLimitError(retry_after_ms(response.headers))

    try:
        body = response.json()
    except json.JSONDecodeError as e:
        if response.status != HTTP_OK:
            raise BackendError(f"HTTP {response.status}: {response.body}", status=response.status) from e
        raise BackendError(f"Failed to parse response: {e}", status=response.status) from e

    if response.status != HTTP_OK:
        detail = error_detail(body) or response.body
        raise BackendError(detail, status=response.status)
    return body

"""Access logging for the structure API.

Every response carries an ``X-Request-ID`` (echoed from the request when the
caller sent one). Structure responses are logged with the provider that
served them and whether the cache answered, taken from the ``X-Structure-Source``
and ``X-Cache`` headers the structure routes set.
"""

import logging
import time
import uuid

from fastapi import Request, Response

logger = logging.getLogger(__name__)


async def access_log_middleware(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    start = time.monotonic()

    response: Response = await call_next(request)

    response.headers["X-Request-ID"] = request_id
    fields = [
        f"request_id={request_id}",
        f"{request.method} {request.url.path}",
        f"status={response.status_code}",
        f"duration_ms={int((time.monotonic() - start) * 1000)}",
    ]
    source = response.headers.get("X-Structure-Source")
    if source:
        fields.append(f"source={source}")
        fields.append(f"cache={response.headers.get('X-Cache', '-')}")

    level = logging.WARNING if response.status_code >= 500 else logging.INFO
    logger.log(level, " ".join(fields))
    return response

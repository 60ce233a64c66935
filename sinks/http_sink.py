"""
Deliver batches to an HTTP endpoint as a JSON array
"""

import httpx
import json
from typing import Any, Dict, List
import logging

from core.config import settings
from core.exceptions import HttpDeliveryError
from schemas.destination import HttpSetup

logger = logging.getLogger(__name__)


async def send_request(batch: List[Dict[str, Any]], setup: HttpSetup) -> httpx.Response:
    """
    Send one batch in a single request.

    Args:
        batch: Records to deliver
        setup: Target endpoint, method, headers and query params

    Returns:
        HTTP response

    Raises:
        HttpDeliveryError: On transport failure or a non-2xx status
    """
    timeout = setup.timeout or settings.HTTP_TIMEOUT
    headers = {"Content-Type": "application/json", **setup.headers}
    # default=str covers datetimes and other values json cannot encode
    body = json.dumps(batch, default=str)

    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            response = await client.request(
                setup.method,
                setup.url,
                content=body,
                headers=headers,
                params=setup.params
            )
            response.raise_for_status()

    except httpx.HTTPStatusError as e:
        raise HttpDeliveryError(
            f"{setup.url} rejected batch",
            context={
                "url": setup.url,
                "status_code": e.response.status_code,
                "batch_size": len(batch)
            },
            original_exception=e
        )

    except httpx.HTTPError as e:
        raise HttpDeliveryError(
            f"Could not reach {setup.url}",
            context={"url": setup.url, "batch_size": len(batch)},
            original_exception=e
        )

    logger.info(f"Sent {len(batch)} records to {setup.method} {setup.url}")
    return response

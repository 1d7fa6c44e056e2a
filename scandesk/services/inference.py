"""Client for the remote image inference service (``POST /process-image``)."""

import logging

import httpx

from scandesk.config import INFERENCE_API_URL, INFERENCE_TIMEOUT_SECONDS
from scandesk.models.services import InferenceResponse

logger = logging.getLogger(__name__)


def _http_client(timeout: float) -> httpx.AsyncClient:
    return httpx.AsyncClient(base_url=INFERENCE_API_URL, timeout=timeout)


def _strip_data_url(image: str) -> str:
    """Drop a ``data:image/...;base64,`` prefix if present."""
    if image.startswith("data:") and "," in image:
        return image.split(",", 1)[1]
    return image


async def process_image(image: str, diagnosis_area: str) -> InferenceResponse:
    """Send a base64 image for diagnosis.

    Never raises for service problems: non-2xx replies, transport errors and
    malformed bodies all come back as ``status="failure"`` with a message.
    """
    try:
        async with _http_client(INFERENCE_TIMEOUT_SECONDS) as client:
            resp = await client.post(
                "/process-image",
                json={"image": _strip_data_url(image), "diagnosisArea": diagnosis_area},
            )
            if resp.status_code >= 400:
                raise RuntimeError(f"Server responded with status: {resp.status_code}")
            return InferenceResponse.model_validate(resp.json())
    except Exception as e:
        logger.error("Error processing image: %s", e)
        return InferenceResponse(status="failure", message=str(e) or "Unknown error occurred")

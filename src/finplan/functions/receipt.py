"""Receipt OCR: download the file, send it as a data URL, read back JSON."""

import base64
from typing import Any

import httpx
import structlog

from finplan.clients.gateway import EmptyResponseError, GatewayClient
from finplan.config import get_settings
from finplan.extraction import JSONExtractionError, extract_json_object, parse_localized_amount
from finplan.functions.base import FunctionError
from finplan.functions.definitions import RECEIPT_PROMPT

logger = structlog.get_logger(__name__)

SUPPORTED_FORMATS = ["image/jpeg", "image/png", "image/webp", "image/gif", "application/pdf"]


class ReceiptFetchError(Exception):
    """The receipt file could not be downloaded."""

    pass


def is_supported_mime_type(mime_type: str) -> bool:
    """PDFs match on ``pdf``; images match on their subtype anywhere in the type."""
    for supported in SUPPORTED_FORMATS:
        if supported == "application/pdf":
            if "pdf" in mime_type:
                return True
        elif supported.split("/")[1] in mime_type:
            return True
    return False


async def fetch_as_data_url(http: httpx.AsyncClient, url: str) -> tuple[str, str]:
    """Download ``url`` and return ``(data_url, mime_type)``."""
    response = await http.get(url)
    if not response.is_success:
        raise ReceiptFetchError(f"Failed to fetch file: {response.status_code}")
    mime_type = response.headers.get("content-type") or "application/octet-stream"
    encoded = base64.b64encode(response.content).decode("ascii")
    return f"data:{mime_type};base64,{encoded}", mime_type


def normalize_receipt(result: dict[str, Any]) -> dict[str, Any]:
    """Turn Turkish formatted string amounts into numbers."""
    for key in ("totalAmount", "taxAmount"):
        value = result.get(key)
        if value and isinstance(value, str):
            result[key] = parse_localized_amount(value)
    return result


async def parse_receipt(
    gateway: GatewayClient,
    http: httpx.AsyncClient,
    image_url: str,
) -> dict[str, Any]:
    """Read vendor, date, totals and tax from a receipt image or PDF.

    Returns:
        ``{"result": {...}}``, or ``{"result": None}`` when the model's
        answer holds no parseable JSON.

    Raises:
        FunctionError: Unsupported file format (400).
        ReceiptFetchError: The file could not be downloaded.
        EmptyResponseError: The model returned no content.
    """
    settings = get_settings()
    data_url, mime_type = await fetch_as_data_url(http, image_url)
    if not is_supported_mime_type(mime_type):
        raise FunctionError(
            f"Desteklenmeyen dosya formatı: {mime_type}. "
            "Lütfen JPG, PNG, WebP, GIF veya PDF yükleyin.",
            status_code=400,
            details={"supportedFormats": SUPPORTED_FORMATS},
        )
    log = logger.bind(mime_type=mime_type)
    log.info("receipt_fetched", size=len(data_url))

    response = await gateway.generate(
        system_prompt="",
        messages=[
            {
                "role": "user",
                "content": [
                    {"type": "image_url", "image_url": {"url": data_url}},
                    {"type": "text", "text": f"{RECEIPT_PROMPT}\n\nBu fiş/faturayı analiz et."},
                ],
            }
        ],
        model=settings.pro_model,
    )
    if not response.content:
        raise EmptyResponseError("No content in AI response")

    try:
        result: dict[str, Any] | None = normalize_receipt(extract_json_object(response.content))
    except JSONExtractionError as e:
        log.error("receipt_parse_failed", error=str(e), raw=response.content[:500])
        result = None
    else:
        log.info("receipt_parsed", vendor=result.get("vendorName"))
    return {"result": result}

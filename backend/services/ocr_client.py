"""OCR collaborator: sends a PDF, receives a searchable PDF back."""
import asyncio
import logging
import time
from typing import Dict, Optional

import httpx

from config import OCR_API_URL, OCR_API_KEY, HTTP_TIMEOUT
from services.errors import OcrFailure

logger = logging.getLogger(__name__)

RETRYABLE_STATUS = {429, 502, 503, 504}


class BinaryServiceClient:
    """Bytes-in/bytes-out HTTP boundary with exponential backoff retry."""

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = HTTP_TIMEOUT,
        max_retries: int = 3,
        initial_delay: float = 2.0,
        transport: httpx.AsyncBaseTransport = None,
    ):
        """
        Initialize the client.

        Args:
            base_url: Endpoint receiving the multipart upload
            api_key: Bearer token, if the service needs one
            timeout: Request timeout in seconds
            max_retries: Attempts for retryable failures
            initial_delay: Initial delay in seconds for exponential backoff
            transport: Optional httpx transport (tests)
        """
        if not base_url:
            raise ValueError("Service URL must be provided or set in environment")

        self.base_url = base_url
        self.api_key = api_key
        self.timeout = timeout
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/pdf"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def _post_file(self, data: bytes, file_name: str, content_type: str) -> bytes:
        """
        Upload a file and return the response body.

        Raises:
            OcrFailure: If the service fails after all retries
        """
        delay = self.initial_delay
        last_error = None

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            for attempt in range(self.max_retries):
                try:
                    start_time = time.time()
                    response = await client.post(
                        self.base_url,
                        headers=self._headers(),
                        files={"file": (file_name, data, content_type)},
                    )
                    elapsed = time.time() - start_time

                    if response.status_code in RETRYABLE_STATUS:
                        last_error = f"Service unavailable ({response.status_code})"
                        logger.warning(
                            f"{last_error} on attempt {attempt + 1}/{self.max_retries}",
                            extra={"file_name": file_name},
                        )
                    elif response.status_code in (401, 403):
                        logger.error(f"Authentication failed for {self.base_url}")
                        raise OcrFailure("Invalid API key", {"status": response.status_code})
                    elif response.status_code != 200:
                        raise OcrFailure(
                            f"Request failed with status {response.status_code}",
                            {"status": response.status_code, "body": response.text[:200]},
                        )
                    elif not response.content:
                        raise OcrFailure("Service returned an empty body")
                    else:
                        logger.info(
                            f"Processed {file_name} in {elapsed:.2f}s",
                            extra={"file_name": file_name},
                        )
                        return response.content

                except httpx.TimeoutException:
                    last_error = f"Request timeout after {self.timeout}s"
                    logger.error(f"{last_error} on attempt {attempt + 1}/{self.max_retries}")

                except httpx.RequestError as e:
                    last_error = f"Network error: {str(e)}"
                    logger.error(f"{last_error} on attempt {attempt + 1}/{self.max_retries}")

                if attempt < self.max_retries - 1:
                    await asyncio.sleep(delay)
                    delay = min(delay * 2, 60.0)

        raise OcrFailure(
            f"Failed after {self.max_retries} attempts. Last error: {last_error}",
            {"url": self.base_url},
        )


class OcrClient(BinaryServiceClient):
    """Client for the OCR service."""

    def __init__(self, base_url: str = OCR_API_URL, api_key: str = OCR_API_KEY, **kwargs):
        super().__init__(base_url, api_key, **kwargs)
        logger.info("OcrClient initialized successfully")

    async def recognize(self, pdf_bytes: bytes, file_name: str = "document.pdf") -> bytes:
        """
        OCR a whole PDF.

        Returns:
            PDF bytes with a text layer

        Raises:
            OcrFailure: If the OCR service fails
        """
        return await self._post_file(pdf_bytes, file_name, "application/pdf")

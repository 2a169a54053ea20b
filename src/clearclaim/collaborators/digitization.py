"""
Digitization collaborator.

The digitization service turns document URLs into structured field data.
The lifecycle controller talks to it through the ``Digitizer`` protocol so
tests can substitute an in-memory fake.
"""

import asyncio
import logging
from typing import Any, Protocol, runtime_checkable

import aiohttp
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..config import DigitizationConfig
from ..exceptions import ConfigurationError, DigitizationError
from .schemas import invoice_extraction_fields

logger = logging.getLogger(__name__)

PREDICT_MODE = "predict"


class DigitizedDocument(BaseModel):
    """One classified document returned by the service."""

    model_config = ConfigDict(extra="allow")

    document_type: str = "other"
    document_ids: list[str | int | None] = Field(default_factory=list)
    source_urls: list[str] = Field(default_factory=list)
    total_images: int = 0
    data: dict[str, Any] = Field(default_factory=dict)
    fraud_analysis: dict[str, Any] | None = None


class DigitizedDocuments(BaseModel):
    model_config = ConfigDict(extra="allow")

    documents: list[DigitizedDocument] = Field(default_factory=list)


class DigitizationResponse(BaseModel):
    """Envelope returned by the digitization service."""

    model_config = ConfigDict(extra="allow")

    success: bool
    request_id: str = ""
    data: DigitizedDocuments = Field(default_factory=DigitizedDocuments)
    message: str = ""

    @property
    def documents(self) -> list[DigitizedDocument]:
        return self.data.documents


class DigitizedClaim(BaseModel):
    """Field payloads of a claim's documents, one per document type."""

    prescription_data: dict[str, Any] | None = None
    invoice_data: dict[str, Any] | None = None
    lab_report_data: dict[str, Any] | None = None


@runtime_checkable
class Digitizer(Protocol):
    """Interface of the digitization collaborator."""

    async def extract_documents(
        self,
        urls: list[str],
        mode: str,
        detect_fraud: bool,
        fields: dict[str, Any],
    ) -> DigitizationResponse:
        """Extract structured data from the given document URLs."""
        ...


class HttpDigitizationClient:
    """
    Digitization client over HTTP.

    Posts every document of a claim in a single request with bearer auth.
    """

    def __init__(
        self,
        api_url: str,
        api_key: str,
        timeout: float = 60.0,
        confidence_threshold: float = 0.7,
    ) -> None:
        if not api_url:
            raise ConfigurationError("Digitization API URL is not configured")
        self.api_url = api_url
        self.api_key = api_key
        self.timeout = timeout
        self.confidence_threshold = confidence_threshold

    @classmethod
    def from_config(cls, config: DigitizationConfig) -> "HttpDigitizationClient":
        return cls(
            api_url=config.api_url,
            api_key=config.api_key,
            timeout=config.timeout,
            confidence_threshold=config.confidence_threshold,
        )

    def build_payload(
        self,
        urls: list[str],
        mode: str,
        detect_fraud: bool,
        fields: dict[str, Any] | None,
    ) -> dict[str, Any]:
        return {
            "document_type": mode,
            "detect_fraud": detect_fraud,
            "files": [{"url": url} for url in urls],
            "fields": fields or {},
            "options": {"confidence_threshold": self.confidence_threshold},
        }

    async def extract_documents(
        self,
        urls: list[str],
        mode: str = PREDICT_MODE,
        detect_fraud: bool = True,
        fields: dict[str, Any] | None = None,
    ) -> DigitizationResponse:
        """
        Send documents to the digitization service.

        Raises:
            DigitizationError: On HTTP errors, transport failures or an
                unreadable response body
        """
        payload = self.build_payload(urls, mode, detect_fraud, fields)
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        logger.info(
            "Digitization request: mode=%s detect_fraud=%s files=%d",
            mode,
            detect_fraud,
            len(urls),
        )

        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    self.api_url,
                    json=payload,
                    headers=headers,
                    timeout=aiohttp.ClientTimeout(total=self.timeout),
                ) as response:
                    if response.status >= 400:
                        text = await response.text()
                        raise DigitizationError(
                            f"Digitization API error: {response.status} - "
                            f"{text or response.reason}",
                            details={"status": response.status},
                        )
                    body = await response.json(content_type=None)
        except aiohttp.ClientError as e:
            raise DigitizationError(f"Digitization API request failed: {e}") from e
        except asyncio.TimeoutError as e:
            raise DigitizationError(
                f"Digitization API request timed out after {self.timeout}s"
            ) from e
        except ValueError as e:
            raise DigitizationError(f"Digitization API returned invalid JSON: {e}") from e

        try:
            result = DigitizationResponse.model_validate(body)
        except ValidationError as e:
            raise DigitizationError(f"Unexpected digitization response: {e}") from e

        logger.info(
            "Digitization response: success=%s documents=%d",
            result.success,
            len(result.documents),
        )
        logger.debug("Digitization payload: %s", body)
        return result


class DigitizationService:
    """
    Digitizes a claim's documents and sorts them by type.
    """

    # Document types routed to each bucket, in lookup order
    PRESCRIPTION_TYPES = ("prescription", "other")
    INVOICE_TYPES = ("invoice",)
    LAB_REPORT_TYPES = ("lab_report",)

    def __init__(self, digitizer: Digitizer, procedures: list[str] | None = None) -> None:
        self.digitizer = digitizer
        self.procedures = list(procedures or [])

    async def extract_all(self, urls: list[str], detect_fraud: bool = True) -> DigitizedClaim:
        """
        Digitize every document of a claim in one call.

        `urls` is the union of prescription, invoice and support document
        URLs.

        The invoice schema is sent for all documents; the service decides
        each document's type.

        Raises:
            DigitizationError: When the call fails or reports failure
        """
        if not urls:
            return DigitizedClaim()

        response = await self.digitizer.extract_documents(
            urls,
            PREDICT_MODE,
            detect_fraud,
            invoice_extraction_fields(self.procedures),
        )
        if not response.success:
            raise DigitizationError(
                f"Document extraction failed: {response.message or 'Unknown error'}",
                details={"request_id": response.request_id},
            )
        return self.partition(response.documents)

    def partition(self, documents: list[DigitizedDocument]) -> DigitizedClaim:
        """Pick the first document of each type and keep its data payload."""
        logger.debug("Document types: %s", [d.document_type for d in documents])
        return DigitizedClaim(
            prescription_data=self._first_of(documents, self.PRESCRIPTION_TYPES),
            invoice_data=self._first_of(documents, self.INVOICE_TYPES),
            lab_report_data=self._first_of(documents, self.LAB_REPORT_TYPES),
        )

    @staticmethod
    def _first_of(
        documents: list[DigitizedDocument], types: tuple[str, ...]
    ) -> dict[str, Any] | None:
        for doc in documents:
            if doc.document_type in types:
                return doc.data
        return None

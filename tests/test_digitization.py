"""
Tests for the digitization collaborator.
"""

from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from clearclaim.collaborators.digitization import (
    PREDICT_MODE,
    DigitizationService,
    DigitizedDocument,
    HttpDigitizationClient,
)
from clearclaim.config import DigitizationConfig
from clearclaim.exceptions import ConfigurationError, DigitizationError

from conftest import FakeDigitizer


def mock_session(status: int, body: Any = None, text: str = "") -> MagicMock:
    """Build a ClientSession stand-in whose post returns the given response."""
    response = MagicMock()
    response.status = status
    response.reason = "Error"
    response.text = AsyncMock(return_value=text)
    response.json = AsyncMock(return_value=body)

    post_context = MagicMock()
    post_context.__aenter__ = AsyncMock(return_value=response)
    post_context.__aexit__ = AsyncMock(return_value=False)
    session = MagicMock()
    session.post = MagicMock(return_value=post_context)

    session_context = MagicMock()
    session_context.__aenter__ = AsyncMock(return_value=session)
    session_context.__aexit__ = AsyncMock(return_value=False)
    return session_context


class TestDigitizationService:
    """Tests for DigitizationService."""

    async def test_extract_all(self) -> None:
        """Test that every URL is sent in one predict call."""
        digitizer = FakeDigitizer(
            documents=[
                {"document_type": "invoice", "data": {"invoice_metadata": {"invoice_number": "9"}}},
                {"document_type": "prescription", "data": {"medical_info": {}}},
            ]
        )
        service = DigitizationService(digitizer, procedures=["Consultation", "Dental"])

        claim = await service.extract_all(["rx", "inv", "lab"], detect_fraud=False)

        call = digitizer.calls[0]
        assert call["urls"] == ["rx", "inv", "lab"]
        assert call["mode"] == PREDICT_MODE
        assert call["detect_fraud"] is False
        assert call["fields"]["reimbursement_type"]["enum"] == ["Consultation", "Dental"]
        assert claim.invoice_data == {"invoice_metadata": {"invoice_number": "9"}}
        assert claim.prescription_data == {"medical_info": {}}
        assert claim.lab_report_data is None

    async def test_no_urls(self) -> None:
        """Test that a claim without documents makes no call."""
        digitizer = FakeDigitizer()

        claim = await DigitizationService(digitizer).extract_all([])

        assert digitizer.calls == []
        assert claim.invoice_data is None

    async def test_unsuccessful_response(self) -> None:
        """Test that a reported failure raises."""
        digitizer = FakeDigitizer(success=False, message="quota exceeded")

        with pytest.raises(DigitizationError, match="Document extraction failed: quota exceeded"):
            await DigitizationService(digitizer).extract_all(["rx", "inv"])

    def test_partition_first_of_each_type(self) -> None:
        """Test routing by document type, first document winning."""
        documents = [
            DigitizedDocument(document_type="other", data={"n": 1}),
            DigitizedDocument(document_type="lab_report", data={"n": 2}),
            DigitizedDocument(document_type="lab_report", data={"n": 3}),
            DigitizedDocument(document_type="invoice", data={"n": 4}),
        ]
        claim = DigitizationService(FakeDigitizer()).partition(documents)

        assert claim.prescription_data == {"n": 1}
        assert claim.lab_report_data == {"n": 2}
        assert claim.invoice_data == {"n": 4}


class TestHttpDigitizationClient:
    """Tests for HttpDigitizationClient."""

    def test_requires_url(self) -> None:
        """Test that an endpoint must be configured."""
        with pytest.raises(ConfigurationError):
            HttpDigitizationClient.from_config(DigitizationConfig())

    def test_build_payload(self) -> None:
        """Test the request body."""
        client = HttpDigitizationClient("https://digitize.example/v1", "key", confidence_threshold=0.8)
        payload = client.build_payload(["a", "b"], PREDICT_MODE, True, None)

        assert payload == {
            "document_type": "predict",
            "detect_fraud": True,
            "files": [{"url": "a"}, {"url": "b"}],
            "fields": {},
            "options": {"confidence_threshold": 0.8},
        }

    async def test_success(self) -> None:
        """Test parsing a successful response."""
        body = {
            "success": True,
            "request_id": "r-1",
            "data": {"documents": [{"document_type": "invoice", "data": {"x": 1}}]},
        }
        client = HttpDigitizationClient("https://digitize.example/v1", "secret")

        with patch("aiohttp.ClientSession", return_value=mock_session(200, body)) as session_cls:
            response = await client.extract_documents(["a"], PREDICT_MODE, True, {})

        assert response.success is True
        assert response.documents[0].data == {"x": 1}
        session = session_cls.return_value.__aenter__.return_value
        headers = session.post.call_args.kwargs["headers"]
        assert headers["Authorization"] == "Bearer secret"

    async def test_http_error(self) -> None:
        """Test that error statuses raise with the response text."""
        client = HttpDigitizationClient("https://digitize.example/v1", "secret")

        with patch("aiohttp.ClientSession", return_value=mock_session(502, text="bad gateway")):
            with pytest.raises(DigitizationError, match="Digitization API error: 502 - bad gateway"):
                await client.extract_documents(["a"], PREDICT_MODE, True, {})

    async def test_transport_error(self) -> None:
        """Test that connection failures are wrapped."""
        client = HttpDigitizationClient("https://digitize.example/v1", "secret")
        failing = MagicMock()
        failing.__aenter__ = AsyncMock(side_effect=aiohttp.ClientConnectionError("refused"))
        failing.__aexit__ = AsyncMock(return_value=False)

        with patch("aiohttp.ClientSession", return_value=failing):
            with pytest.raises(DigitizationError, match="request failed"):
                await client.extract_documents(["a"], PREDICT_MODE, True, {})

    async def test_malformed_body(self) -> None:
        """Test that a body without the envelope is refused."""
        client = HttpDigitizationClient("https://digitize.example/v1", "secret")

        with patch("aiohttp.ClientSession", return_value=mock_session(200, {"documents": []})):
            with pytest.raises(DigitizationError, match="Unexpected digitization response"):
                await client.extract_documents(["a"], PREDICT_MODE, True, {})

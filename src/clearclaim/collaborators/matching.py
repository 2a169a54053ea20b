"""
Line-item matching collaborator.

Asks a chat-completion model whether each invoice line item is justified by
the prescription. The model is treated as an unreliable text generator: any
failure or unparseable answer degrades the whole category to "unmatched".
"""

import asyncio
import json
import logging
import re
from typing import Any, Protocol, runtime_checkable

from openai import AsyncAzureOpenAI, AsyncOpenAI, OpenAIError
from pydantic import ValidationError

from ..config import MatchingConfig
from ..core.line_items import InvoiceLineItem, LineItemParser, PrescribedItem, get_parser
from ..core.models import ItemCategory, MatchingResults, MatchResult
from ..exceptions import ConfigurationError, MatchingError, MatchingParseError
from .prompts import (
    LAB_TEST_MATCHING_SYSTEM_PROMPT,
    MEDICINE_MATCHING_SYSTEM_PROMPT,
    OTHERS_MATCHING_SYSTEM_PROMPT,
    build_lab_test_matching_prompt,
    build_medicine_matching_prompt,
    build_others_matching_prompt,
)

logger = logging.getLogger(__name__)

CODE_FENCE_PATTERN = re.compile(r"```(?:json)?\s*", re.IGNORECASE)


@runtime_checkable
class MatchingClient(Protocol):
    """Interface of the matching collaborator."""

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        """Return the raw text answer, raising MatchingError on failure."""
        ...


class OpenAIMatchingClient:
    """Matching client backed by OpenAI or Azure OpenAI chat completions."""

    def __init__(
        self,
        client: AsyncOpenAI,
        model: str = "gpt-4o-mini",
        temperature: float = 0.1,
        max_tokens: int = 4000,
    ) -> None:
        self.client = client
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    @classmethod
    def from_config(cls, config: MatchingConfig) -> "OpenAIMatchingClient":
        """
        Create a client, preferring Azure OpenAI when its credentials are set.

        Raises:
            ConfigurationError: If no credentials are configured
        """
        if config.use_azure:
            logger.debug("Creating AsyncAzureOpenAI client")
            client: AsyncOpenAI = AsyncAzureOpenAI(
                api_key=config.azure_api_key,
                api_version=config.azure_api_version,
                azure_endpoint=config.azure_endpoint,
                max_retries=3,
                timeout=60.0,
            )
            model = config.azure_deployment or config.model
        elif config.api_key:
            logger.debug("Creating AsyncOpenAI client")
            client = AsyncOpenAI(api_key=config.api_key, max_retries=3, timeout=60.0)
            model = config.model
        else:
            raise ConfigurationError(
                "No OpenAI credentials found. Set OPENAI_API_KEY or "
                "AZURE_OPENAI_API_KEY + AZURE_OPENAI_ENDPOINT"
            )
        return cls(client, model, config.temperature, config.max_tokens)

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            )
        except OpenAIError as e:
            raise MatchingError(f"Chat completion failed: {e}") from e

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise MatchingError("No content returned")
        return content


def parse_match_response(content: str) -> list[MatchResult]:
    """
    Parse the model's answer into match results.

    Code fences around the JSON are removed first. An empty answer means
    no results.

    Raises:
        MatchingParseError: If the text is not a JSON array of match objects
    """
    text = CODE_FENCE_PATTERN.sub("", content or "").strip() or "[]"
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise MatchingParseError(f"Invalid JSON in matching response: {e}") from e
    if not isinstance(data, list):
        raise MatchingParseError("Matching response is not a JSON array")
    try:
        return [MatchResult.model_validate(entry) for entry in data]
    except ValidationError as e:
        raise MatchingParseError(f"Malformed match result: {e}") from e


class LineItemMatcher:
    """
    Runs the three per-category matching calls.

    Each category fails independently; a failed category comes back with
    every item unmatched and the failure in its reason.
    """

    def __init__(self, client: MatchingClient, parser: LineItemParser | None = None) -> None:
        self.client = client
        self.parser = parser or get_parser()

    @staticmethod
    def all_unmatched(
        items: list[InvoiceLineItem], remark: str, reason: str
    ) -> list[MatchResult]:
        return [MatchResult.unmatched(item.index, item.name, remark, reason) for item in items]

    async def _run(
        self,
        category: ItemCategory,
        items: list[InvoiceLineItem],
        system_prompt: str,
        user_prompt: str,
    ) -> list[MatchResult]:
        try:
            content = await self.client.complete(system_prompt, user_prompt)
            logger.debug("Matching response for %s: %s", category.value, content)
            return parse_match_response(content)
        except MatchingParseError as e:
            logger.warning("Failed to parse %s matching response: %s", category.value, e)
            return self.all_unmatched(items, "Parse error", "Failed to parse matching results")
        except MatchingError as e:
            logger.warning("%s matching failed: %s", category.value.capitalize(), e)
            return self.all_unmatched(items, "Matching error", str(e))
        except Exception as e:
            logger.exception("Unexpected error while matching %s items", category.value)
            return self.all_unmatched(items, "Error", str(e) or "Unknown error during matching")

    async def match_medicines(
        self, items: list[InvoiceLineItem], prescribed: list[PrescribedItem]
    ) -> list[MatchResult]:
        """Match invoice medicines against prescribed medicines."""
        if not items:
            return []
        if not prescribed:
            return self.all_unmatched(
                items,
                "No prescription medicines found",
                "No medicines found in prescription to match against",
            )
        prompt = build_medicine_matching_prompt(
            [i.to_matching_input() for i in items],
            [p.to_matching_input() for p in prescribed],
        )
        return await self._run(
            ItemCategory.MEDICINE, items, MEDICINE_MATCHING_SYSTEM_PROMPT, prompt
        )

    async def match_lab_tests(
        self,
        items: list[InvoiceLineItem],
        prescribed: list[PrescribedItem],
        lab_report_tests: list[str] | None = None,
    ) -> list[MatchResult]:
        """Match invoice lab tests against prescribed tests and the lab report."""
        if not items:
            return []
        prompt = build_lab_test_matching_prompt(
            [i.to_matching_input() for i in items],
            [p.to_matching_input() for p in prescribed],
            list(lab_report_tests or []),
        )
        return await self._run(ItemCategory.LAB, items, LAB_TEST_MATCHING_SYSTEM_PROMPT, prompt)

    async def match_others(
        self, items: list[InvoiceLineItem], prescription_details: dict[str, str]
    ) -> list[MatchResult]:
        """Match other invoice items against the diagnosis and clinical summary."""
        if not items:
            return []
        prompt = build_others_matching_prompt(
            [i.to_matching_input() for i in items], prescription_details
        )
        return await self._run(ItemCategory.OTHER, items, OTHERS_MATCHING_SYSTEM_PROMPT, prompt)

    async def match_claim(
        self,
        prescription_data: dict[str, Any] | None,
        invoice_data: dict[str, Any] | None,
        lab_report_data: dict[str, Any] | None,
    ) -> MatchingResults:
        """Extract line items from digitized payloads and match all three categories concurrently."""
        parser = self.parser
        medicines, lab_tests, others = await asyncio.gather(
            self.match_medicines(
                parser.invoice_items(invoice_data, ItemCategory.MEDICINE),
                parser.prescribed_medicines(prescription_data),
            ),
            self.match_lab_tests(
                parser.invoice_items(invoice_data, ItemCategory.LAB),
                parser.prescribed_lab_tests(prescription_data),
                parser.lab_report_tests(lab_report_data),
            ),
            self.match_others(
                parser.invoice_items(invoice_data, ItemCategory.OTHER),
                parser.diagnosis_context(prescription_data),
            ),
        )
        logger.info(
            "Matched %d medicines, %d lab tests, %d other items",
            len(medicines),
            len(lab_tests),
            len(others),
        )
        return MatchingResults(medicines=medicines, lab_tests=lab_tests, others=others)

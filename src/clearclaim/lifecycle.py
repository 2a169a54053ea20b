"""
Claim Lifecycle Controller.

Owns the claim status state machine:

    pending -> digitizing -> adjudicating -> adjudicated -> submitted

Claims are created synchronously and processed in a background task per
claim. Each claim has a work item recording how far processing got, so a
restarted process can find and resume claims whose run was interrupted.
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import date
from typing import Any

from pydantic import ValidationError

from .collaborators.digitization import DigitizationService, Digitizer, HttpDigitizationClient
from .collaborators.matching import LineItemMatcher, MatchingClient, OpenAIMatchingClient
from .config import Settings
from .core.models import Claim, ClaimInput, ClaimPage, ClaimStatus
from .engine import AdjudicationEngine
from .exceptions import (
    ClaimNotFoundError,
    ClaimValidationError,
    InvalidStatusTransitionError,
)
from .policies.catalog import PolicyCatalog, get_default_catalog
from .storage.memory import InMemoryClaimStore, InMemoryWorkQueue
from .storage.protocol import ClaimStore, WorkQueue, WorkStage
from .utils.logging import claim_context

logger = logging.getLogger(__name__)

# Statuses a claim can be left in by an interrupted run
IN_FLIGHT_STATUSES = (ClaimStatus.DIGITIZING, ClaimStatus.ADJUDICATING)


class ClaimLifecycleController:
    """
    Drives claims through digitization, matching and adjudication.

    All collaborators are injected; the controller is the only writer of a
    claim's status.
    """

    def __init__(
        self,
        store: ClaimStore,
        queue: WorkQueue,
        digitizer: Digitizer,
        matching_client: MatchingClient,
        engine: AdjudicationEngine | None = None,
        catalog: PolicyCatalog | None = None,
        detect_fraud: bool = True,
        procedures: list[str] | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        """
        Initialize the controller.

        Args:
            store: Claim record store
            queue: Work queue tracking per-claim processing stage
            digitizer: Digitization collaborator
            matching_client: Matching collaborator
            engine: Adjudication engine (created on demand)
            catalog: Policy catalog used for intake validation
            detect_fraud: Fraud-detection flag passed to digitization
            procedures: Reimbursement type labels for the invoice schema
            today: Clock used for the policy window check
        """
        self.store = store
        self.queue = queue
        self.catalog = catalog or get_default_catalog()
        self.engine = engine or AdjudicationEngine(catalog=self.catalog)
        self.digitization = DigitizationService(digitizer, procedures)
        self.matcher = LineItemMatcher(matching_client, self.engine.parser)
        self.detect_fraud = detect_fraud
        self.today = today

        self._tasks: set[asyncio.Task[Any]] = set()
        self._active: set[str] = set()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        store: ClaimStore | None = None,
        queue: WorkQueue | None = None,
    ) -> "ClaimLifecycleController":
        """Build a controller wired to the HTTP digitization and OpenAI matching clients."""
        settings.configure_logging()
        return cls(
            store=store or InMemoryClaimStore(),
            queue=queue or InMemoryWorkQueue(),
            digitizer=HttpDigitizationClient.from_config(settings.digitization),
            matching_client=OpenAIMatchingClient.from_config(settings.matching),
            detect_fraud=settings.processing.detect_fraud,
            procedures=settings.processing.procedures,
        )

    # ------------------------------------------------------------------
    # Intake
    # ------------------------------------------------------------------

    def validate_input(self, claim_input: ClaimInput | dict[str, Any]) -> ClaimInput:
        """
        Validate an intake payload.

        Raises:
            ClaimValidationError: If a required field is missing or empty
            PolicyNotFoundError: If the selected policy is unknown
        """
        if isinstance(claim_input, dict):
            try:
                claim_input = ClaimInput.model_validate(claim_input)
            except ValidationError as e:
                error = e.errors()[0]
                field = ".".join(str(part) for part in error["loc"])
                raise ClaimValidationError(f"Invalid {field}: {error['msg']}", field=field) from e

        if not claim_input.patient_details.name.strip():
            raise ClaimValidationError("Patient name is required", field="patient_details.name")
        if not claim_input.prescription_urls:
            raise ClaimValidationError(
                "At least one prescription URL is required", field="prescription_urls"
            )
        if not claim_input.invoice_urls:
            raise ClaimValidationError("At least one invoice URL is required", field="invoice_urls")
        if not claim_input.policy_documents:
            raise ClaimValidationError(
                "At least one policy document is required", field="policy_documents"
            )
        if not claim_input.policy_name:
            raise ClaimValidationError(
                "Policy name is required", field="policy_documents.0.policy_name"
            )
        self.catalog.require(claim_input.policy_name)
        if not claim_input.user_raised_amount.strip():
            raise ClaimValidationError(
                "User raised amount is required", field="user_raised_amount"
            )
        if not claim_input.request_date.strip():
            raise ClaimValidationError("Request date is required", field="request_date")
        return claim_input

    async def create_claim(self, claim_input: ClaimInput | dict[str, Any]) -> Claim:
        """
        Create a claim and schedule its processing.

        Returns as soon as the claim is stored; processing runs in the
        background.
        """
        validated = self.validate_input(claim_input)
        claim = await self.store.create(Claim.from_input(validated))
        await self.queue.put(claim.claim_id)
        logger.info("Created claim %s for policy %r", claim.claim_id, claim.policy_name)
        self._schedule(claim.claim_id)
        return claim

    # ------------------------------------------------------------------
    # Background processing
    # ------------------------------------------------------------------

    def _schedule(self, claim_id: str) -> None:
        self._active.add(claim_id)
        task = asyncio.create_task(self._run_in_background(claim_id))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_in_background(self, claim_id: str) -> None:
        try:
            await self.process_claim(claim_id)
        except Exception as e:
            # Already recorded on the work item and logged with traceback
            logger.error("Background processing of claim %s failed: %s", claim_id, e)
        finally:
            self._active.discard(claim_id)

    async def process_claim(self, claim_id: str) -> Claim:
        """
        Run digitization, matching and adjudication for a pending claim.

        On failure the claim is reset to pending, the work item is marked
        failed and the exception is re-raised.
        """
        with claim_context(claim_id=claim_id):
            claim = await self.get_claim(claim_id)
            if claim.status != ClaimStatus.PENDING:
                raise InvalidStatusTransitionError(
                    f"Claim must be in 'pending' status to process. "
                    f"Current status: {claim.status.value}",
                    current=claim.status.value,
                    required=ClaimStatus.PENDING.value,
                    claim_id=claim_id,
                )

            try:
                return await self._process(claim)
            except Exception as e:
                logger.exception("Processing failed for claim %s", claim_id)
                await self.store.update(claim_id, status=ClaimStatus.PENDING)
                await self.queue.fail(claim_id, str(e) or type(e).__name__)
                raise

    async def _process(self, claim: Claim) -> Claim:
        claim_id = claim.claim_id

        await self._transition(claim, ClaimStatus.DIGITIZING)
        await self.queue.advance(claim_id, WorkStage.DIGITIZE)
        digitized = await self.digitization.extract_all(
            claim.all_document_urls, detect_fraud=self.detect_fraud
        )
        claim = await self._transition(
            claim,
            ClaimStatus.ADJUDICATING,
            prescription_data=digitized.prescription_data,
            invoice_data=digitized.invoice_data,
            lab_report_data=digitized.lab_report_data,
        )

        await self.queue.advance(claim_id, WorkStage.MATCH)
        matches = await self.matcher.match_claim(
            claim.prescription_data, claim.invoice_data, claim.lab_report_data
        )
        await self.store.update(
            claim_id,
            medicine_matches=matches.medicines,
            lab_test_matches=matches.lab_tests,
            other_matches=matches.others,
        )

        await self.queue.advance(claim_id, WorkStage.ADJUDICATE)
        result = self.engine.adjudicate(
            claim.prescription_data,
            claim.invoice_data,
            claim.lab_report_data,
            claim.policy_name,
            matches,
            as_of=self.today(),
        )
        claim = await self._transition(
            claim,
            ClaimStatus.ADJUDICATED,
            adjudication_result=result,
            medicine_matches=result.matching_results.medicines,
            lab_test_matches=result.matching_results.lab_tests,
            other_matches=result.matching_results.others,
        )
        await self.queue.complete(claim_id)
        logger.info(
            "Claim %s adjudicated: approved=%s reimbursable=%s",
            claim_id,
            result.approved,
            result.total_reimbursable_amount,
        )
        return claim

    async def _transition(self, claim: Claim, target: ClaimStatus, **fields: Any) -> Claim:
        """Move a claim forward to ``target``, persisting any extra fields."""
        if target.rank <= claim.status.rank:
            raise InvalidStatusTransitionError(
                f"Cannot move claim from '{claim.status.value}' to '{target.value}'",
                current=claim.status.value,
                required=target.value,
                claim_id=claim.claim_id,
            )
        logger.debug("Claim %s: %s -> %s", claim.claim_id, claim.status.value, target.value)
        return await self.store.update(claim.claim_id, status=target, **fields)

    # ------------------------------------------------------------------
    # User operations
    # ------------------------------------------------------------------

    async def submit_claim(self, claim_id: str) -> Claim:
        """
        Submit an adjudicated claim.

        Raises:
            ClaimNotFoundError: If the claim does not exist
            InvalidStatusTransitionError: If the claim is not adjudicated
        """
        claim = await self.get_claim(claim_id)
        if claim.status != ClaimStatus.ADJUDICATED:
            raise InvalidStatusTransitionError(
                f"Claim must be in 'adjudicated' status to submit. "
                f"Current status: {claim.status.value}",
                current=claim.status.value,
                required=ClaimStatus.ADJUDICATED.value,
                claim_id=claim_id,
            )
        submitted = await self._transition(claim, ClaimStatus.SUBMITTED)
        logger.info("Claim %s submitted", claim_id)
        return submitted

    async def get_claim(self, claim_id: str) -> Claim:
        claim = await self.store.get(claim_id)
        if claim is None:
            raise ClaimNotFoundError(f"Claim not found: {claim_id}", claim_id=claim_id)
        return claim

    async def list_claims(self, page: int = 1, limit: int = 10) -> ClaimPage:
        return await self.store.list(page=page, limit=limit)

    # ------------------------------------------------------------------
    # Recovery
    # ------------------------------------------------------------------

    async def recover_stuck_claims(self) -> list[str]:
        """
        Re-schedule claims whose processing failed or was interrupted.

        Claims left mid-pipeline with no running task are reset to pending
        first. Work items of claims that already reached adjudicated are
        closed. Returns the ids of the claims resumed.
        """
        resumed: list[str] = []
        for item in await self.queue.pending():
            if item.claim_id in self._active:
                continue
            claim = await self.store.get(item.claim_id)
            if claim is None:
                logger.warning("Work item for unknown claim %s", item.claim_id)
                continue
            if claim.status in IN_FLIGHT_STATUSES:
                logger.warning(
                    "Claim %s interrupted in %s; resetting to pending",
                    claim.claim_id,
                    claim.status.value,
                )
                claim = await self.store.update(claim.claim_id, status=ClaimStatus.PENDING)
            if claim.status.rank >= ClaimStatus.ADJUDICATED.rank:
                # Result was saved before the work item was closed
                await self.queue.complete(claim.claim_id)
                continue
            await self.queue.put(claim.claim_id)
            self._schedule(claim.claim_id)
            resumed.append(claim.claim_id)
        if resumed:
            logger.info("Resumed %d stuck claim(s)", len(resumed))
        return resumed

    async def wait_for_background(self) -> None:
        """Wait until every scheduled processing task has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

"""
Batch Executor

Appends the staking calls to the smart-account gateway in their fixed order,
gates submission on the gas swap covering the estimated fee, submits once, and
polls the gateway until the batch carries an on-chain transaction hash.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Tuple

import httpx

from ...providers.base import ProviderError, SmartAccountGateway
from ..errors import (
    ConfirmationTimeoutError,
    ExecutionFailureError,
    FeeShortfallError,
)
from .models import Batch, BatchCalls, BatchReceipt, BatchStatus, SubmittedBatch


SubmittedCallback = Callable[[str], None]


class BatchExecutor:
    """
    Drives one batch through estimate, fee gate, submit and confirm.

    Confirmation polling is bounded by ``max_attempts``; only a "not yet
    confirmed" snapshot advances the loop, any error from the gateway ends it.
    Cancelling the awaiting task stops the loop at the next sleep.
    """

    def __init__(
        self,
        gateway: SmartAccountGateway,
        *,
        poll_interval: float = 1.0,
        max_attempts: int = 600,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._gateway = gateway
        self._poll_interval = poll_interval
        self._max_attempts = max_attempts
        self._sleep = sleep
        self._logger = logger or logging.getLogger(__name__)
        self.batch: Optional[Batch] = None

    async def execute(
        self,
        calls: BatchCalls,
        expected_gas_output: int,
        on_submitted: Optional[SubmittedCallback] = None,
    ) -> BatchReceipt:
        batch = Batch()
        self.batch = batch

        await self._gateway.clear_batch()
        for call in calls.ordered():
            await self._gateway.add_batch_call(call)
            batch.calls.append(call)

        try:
            estimate = await self._gateway.estimate_batch()
        except (ProviderError, httpx.HTTPError) as exc:
            await self._abort(batch)
            raise ExecutionFailureError(
                f"Batch estimation failed: {exc}",
                stage="batch_building",
                calls=len(batch.calls),
            ) from exc

        batch.estimated_fee = estimate.fee_amount
        batch.status = BatchStatus.ESTIMATED
        self._logger.info(
            "Batch of %s calls estimated at %s; gas swap yields at least %s",
            len(batch.calls),
            estimate.fee_amount,
            expected_gas_output,
        )

        if expected_gas_output < estimate.fee_amount:
            await self._abort(batch)
            raise FeeShortfallError(
                expected_gas_output=expected_gas_output,
                estimated_fee=estimate.fee_amount,
            )

        try:
            submission = await self._gateway.submit_batch()
        except (ProviderError, httpx.HTTPError) as exc:
            raise ExecutionFailureError(
                f"Batch submission was rejected: {exc}",
                stage="batch_building",
                estimated_fee=estimate.fee_amount,
            ) from exc

        batch.submitted_hash = submission.hash
        batch.status = BatchStatus.SUBMITTED
        self._logger.info("Batch submitted: %s", submission.hash)
        if on_submitted is not None:
            on_submitted(submission.hash)

        confirmed, attempts = await self._wait_for_confirmation(submission.hash)
        batch.transaction_hash = confirmed.transaction_hash
        batch.status = BatchStatus.CONFIRMED
        self._logger.info(
            "Batch %s confirmed in transaction %s after %s polls",
            submission.hash,
            confirmed.transaction_hash,
            attempts,
        )
        return BatchReceipt(
            batch_hash=submission.hash,
            transaction_hash=confirmed.transaction_hash or "",
            estimated_fee=estimate.fee_amount,
            calls=list(batch.calls),
            poll_attempts=attempts,
        )

    async def _abort(self, batch: Batch) -> None:
        await self._gateway.clear_batch()
        batch.status = BatchStatus.ABORTED

    async def _wait_for_confirmation(self, batch_hash: str) -> Tuple[SubmittedBatch, int]:
        for attempt in range(1, self._max_attempts + 1):
            try:
                snapshot = await self._gateway.get_batch(batch_hash)
            except (ProviderError, httpx.HTTPError) as exc:
                raise ExecutionFailureError(
                    f"Batch status query failed: {exc}",
                    stage="batch_submitted",
                    batch_hash=batch_hash,
                    attempt=attempt,
                ) from exc

            if snapshot.is_confirmed:
                if snapshot.success is False:
                    raise ExecutionFailureError(
                        "Batch was mined but reverted",
                        stage="batch_submitted",
                        batch_hash=batch_hash,
                        transaction_hash=snapshot.transaction_hash,
                    )
                return snapshot, attempt

            self._logger.debug("Batch %s pending (poll %s/%s)", batch_hash, attempt, self._max_attempts)
            if attempt < self._max_attempts:
                await self._sleep(self._poll_interval)

        raise ConfirmationTimeoutError(batch_hash=batch_hash, attempts=self._max_attempts)

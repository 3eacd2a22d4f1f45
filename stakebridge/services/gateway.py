"""
Smart-account batch gateway on top of an ERC-4337 bundler.

The key-based wallet owns a counterfactual SimpleAccount on the destination
chain. Calls are accumulated locally and submitted as one UserOperation whose
callData is executeBatch(...), so the batch applies atomically.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import List, Optional

from ..core.execution.models import BatchEstimate, BatchSubmission, Call, SubmittedBatch
from ..core.execution.userop import DUMMY_SIGNATURE, UserOperation
from ..core.execution.userop_builder import (
    build_entrypoint_get_nonce_call,
    build_execute_batch_call_data,
    build_factory_get_address_call,
    build_init_code,
    decode_address_word,
)
from ..providers.base import SmartAccountGateway
from ..providers.bundler import BundlerError, BundlerProvider
from ..providers.rpc import JsonRpcClient
from .signer import Signer


class Erc4337Gateway(SmartAccountGateway):
    def __init__(
        self,
        *,
        signer: Signer,
        rpc: JsonRpcClient,
        bundler: BundlerProvider,
        chain_id: int,
        entry_point: str,
        factory: str,
        salt: int = 0,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._signer = signer
        self._rpc = rpc
        self._bundler = bundler
        self._chain_id = chain_id
        self._entry_point = entry_point
        self._factory = factory
        self._salt = salt
        self._logger = logger or logging.getLogger(__name__)
        self._account: Optional[str] = None
        self._calls: List[Call] = []
        self._estimated: Optional[UserOperation] = None

    @property
    def calls(self) -> List[Call]:
        return list(self._calls)

    async def compute_account(self) -> str:
        if self._account is None:
            result = await self._rpc.eth_call(
                self._factory,
                build_factory_get_address_call(self._signer.address, self._salt),
            )
            self._account = decode_address_word(result)
            self._logger.info("Smart account for %s is %s", self._signer.address, self._account)
        return self._account

    async def add_batch_call(self, call: Call) -> None:
        self._calls.append(call)
        self._estimated = None

    async def clear_batch(self) -> None:
        self._calls.clear()
        self._estimated = None

    async def _build_user_operation(self) -> UserOperation:
        sender = await self.compute_account()
        code = await self._rpc.get_code(sender)
        init_code = "0x" if code not in ("0x", "0x0", "") else build_init_code(
            self._factory, self._signer.address, self._salt
        )
        nonce_word = await self._rpc.eth_call(self._entry_point, build_entrypoint_get_nonce_call(sender))
        fees = await self._rpc.fee_per_gas()
        return UserOperation(
            sender=sender,
            nonce=int(nonce_word, 16),
            init_code=init_code,
            call_data=build_execute_batch_call_data(self._calls),
            call_gas_limit=0,
            verification_gas_limit=0,
            pre_verification_gas=0,
            max_fee_per_gas=fees["max_fee_per_gas"],
            max_priority_fee_per_gas=fees["max_priority_fee_per_gas"],
            signature=DUMMY_SIGNATURE,
        )

    async def estimate_batch(self) -> BatchEstimate:
        user_op = await self._build_user_operation()
        gas = await self._bundler.estimate_user_operation_gas(user_op, self._entry_point)
        estimated = user_op.with_gas(gas)
        self._estimated = estimated
        self._logger.info(
            "Estimated batch of %s calls: gas=%s max_fee_per_gas=%s fee=%s",
            len(self._calls),
            estimated.total_gas,
            estimated.max_fee_per_gas,
            estimated.max_cost,
        )
        return BatchEstimate(fee_amount=estimated.max_cost, raw=estimated.to_rpc_dict())

    async def submit_batch(self) -> BatchSubmission:
        if not self._calls:
            raise BundlerError("Cannot submit an empty batch")
        if self._estimated is None:
            await self.estimate_batch()

        # the estimated operation, fees included, is what gets signed
        user_op = replace(self._estimated)
        user_op.signature = self._signer.sign_message_hash(user_op.hash(self._entry_point, self._chain_id))
        user_op_hash = await self._bundler.send_user_operation(user_op, self._entry_point)
        self._logger.info("Submitted batch %s with %s calls", user_op_hash, len(self._calls))
        self._calls.clear()
        self._estimated = None
        return BatchSubmission(hash=user_op_hash)

    async def get_batch(self, batch_hash: str) -> SubmittedBatch:
        receipt = await self._bundler.get_user_operation_receipt(batch_hash)
        if receipt is None:
            return SubmittedBatch(hash=batch_hash)
        return SubmittedBatch(
            hash=batch_hash,
            transaction_hash=receipt.transaction_hash,
            success=receipt.success,
        )

"""
Quote coordination for the two same-chain swap legs.

Both legs are executed under one allowance granted to a single spender, so the
pair is only usable when both quotes name the same approval address.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from ...providers.base import RoutingProvider
from ..errors import ExecutionFailureError, QuoteMismatchError
from .models import Quote, QuotePair, SwapLeg


class QuoteCoordinator:
    def __init__(
        self,
        routing: RoutingProvider,
        *,
        slippage: Optional[float] = None,
        integrator: Optional[str] = None,
        allowed_exchanges: Optional[List[str]] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._routing = routing
        self._slippage = slippage
        self._integrator = integrator
        self._allowed_exchanges = list(allowed_exchanges) if allowed_exchanges else None
        self._logger = logger or logging.getLogger(__name__)

    async def quote(self, leg: SwapLeg) -> Quote:
        payload = await self._routing.get_quote(
            leg.from_token.chain_id,
            leg.from_token.address,
            leg.owner_address,
            leg.from_amount,
            leg.to_token.address,
            slippage=self._slippage,
            integrator=self._integrator,
            allowed_exchanges=self._allowed_exchanges,
        )
        quote = Quote.from_lifi(payload)
        self._logger.info(
            "Quote for %s leg: %s %s -> %s %s (min %s) via %s, spender %s",
            leg.name,
            quote.from_amount,
            leg.from_token.symbol,
            quote.to_amount,
            leg.to_token.symbol,
            quote.to_amount_min,
            quote.tool or "unknown",
            quote.approval_address,
        )
        return quote

    def validate(self, first: Quote, second: Quote) -> None:
        """Reject a pair that cannot share one allowance or cannot be executed."""

        for quote in (first, second):
            if quote.call is None:
                raise ExecutionFailureError(
                    "Quote carries no transaction request",
                    stage="quoting",
                    tool=quote.tool or None,
                    from_amount=quote.from_amount,
                )
            if not quote.approval_address.strip():
                raise ExecutionFailureError(
                    "Quote names no approval address",
                    stage="quoting",
                    tool=quote.tool or None,
                    from_amount=quote.from_amount,
                )

        # addresses are checksummed inconsistently across exchanges
        if first.approval_address.lower() != second.approval_address.lower():
            raise QuoteMismatchError(
                first_approval_address=first.approval_address,
                second_approval_address=second.approval_address,
            )

    async def quote_pair(self, gas_leg: SwapLeg, governance_leg: SwapLeg) -> QuotePair:
        # sequential: the allowance total depends on both results
        gas_quote = await self.quote(gas_leg)
        governance_quote = await self.quote(governance_leg)
        self.validate(gas_quote, governance_quote)
        return QuotePair(gas=gas_quote, governance=governance_quote)

"""
Transaction builder for the calls that make up a staking batch.
"""

from ...config import STAKE_KLIMA_CONTRACT_ADDRESS
from ..swap.models import Quote
from .encoding import encode_address, encode_uint, selector
from .models import Call, CallType


ERC20_APPROVE_SELECTOR = "0x095ea7b3"  # approve(address,uint256)
ERC20_TRANSFER_SELECTOR = "0xa9059cbb"  # transfer(address,uint256)
STAKE_SELECTOR = selector("stake(uint256)")


class TransactionBuilder:
    """
    Builds unsigned calls without touching the network.

    Handles:
    - ERC20 approvals
    - ERC20 transfers
    - Staking on the fixed staking contract
    - Swap calls carried by quotes
    """

    @staticmethod
    def build_approve(token_address: str, spender_address: str, amount: int) -> Call:
        """
        Build an ERC20 approval call.

        Args:
            token_address: The ERC20 token contract
            spender_address: The address being approved to spend
            amount: The amount to approve (smallest units)

        Returns:
            Call targeting the token contract
        """
        calldata = (
            ERC20_APPROVE_SELECTOR +
            encode_address(spender_address) +
            encode_uint(amount)
        )
        return Call(
            to=token_address,
            data=calldata,
            call_type=CallType.APPROVE,
            description=f"Approve {spender_address[:10]}... for {amount}",
        )

    @staticmethod
    def build_transfer(token_address: str, to_address: str, amount: int) -> Call:
        """
        Build an ERC20 transfer call.

        Args:
            token_address: The ERC20 token contract
            to_address: The recipient address
            amount: The amount to transfer (smallest units)

        Returns:
            Call targeting the token contract
        """
        calldata = (
            ERC20_TRANSFER_SELECTOR +
            encode_address(to_address) +
            encode_uint(amount)
        )
        return Call(
            to=token_address,
            data=calldata,
            call_type=CallType.TRANSFER,
            description=f"Transfer {amount} to {to_address[:10]}...",
        )

    @staticmethod
    def build_stake(amount: int, staking_contract: str = STAKE_KLIMA_CONTRACT_ADDRESS) -> Call:
        """Build a stake(uint256) call on the staking contract."""
        encode_address(staking_contract)
        return Call(
            to=staking_contract,
            data=STAKE_SELECTOR + encode_uint(amount),
            call_type=CallType.STAKE,
            description=f"Stake {amount}",
        )

    @staticmethod
    def build_from_quote(quote: Quote) -> Call:
        """Turn the transaction request of a swap quote into a call."""
        if quote.call is None:
            raise ValueError("Swap quote has no transaction data")
        return Call(
            to=quote.call.to,
            data=quote.call.data,
            call_type=CallType.SWAP,
            description=f"Swap {quote.from_amount} {quote.from_symbol} -> {quote.to_symbol} via {quote.tool}",
        )

"""
Batch Execution Layer

- TransactionBuilder: pure calldata construction for approvals, transfers, staking
- BatchExecutor: appends calls to the smart-account batch, gates on fee, submits and polls

Usage:
    from stakebridge.core.execution.batch_executor import BatchExecutor
    from stakebridge.core.execution.tx_builder import TransactionBuilder

    call = TransactionBuilder.build_approve(token, spender, amount)
    receipt = await BatchExecutor(gateway).execute(calls, expected_gas_output)
"""

"""Constants and metadata for bridge orchestration."""

from typing import Any, Dict

NATIVE_PLACEHOLDER = '0x0000000000000000000000000000000000000000'

CHAIN_METADATA: Dict[int, Dict[str, Any]] = {
    1: {
        'name': 'Ethereum',
        'key': 'eth',
        'native_symbol': 'ETH',
        'native_decimals': 18,
    },
    10: {
        'name': 'Optimism',
        'key': 'opt',
        'native_symbol': 'ETH',
        'native_decimals': 18,
    },
    56: {
        'name': 'BNB Chain',
        'key': 'bsc',
        'native_symbol': 'BNB',
        'native_decimals': 18,
    },
    100: {
        'name': 'Gnosis',
        'key': 'dai',
        'native_symbol': 'xDAI',
        'native_decimals': 18,
    },
    137: {
        'name': 'Polygon',
        'key': 'pol',
        'native_symbol': 'MATIC',
        'native_decimals': 18,
    },
    250: {
        'name': 'Fantom',
        'key': 'ftm',
        'native_symbol': 'FTM',
        'native_decimals': 18,
    },
    42161: {
        'name': 'Arbitrum',
        'key': 'arb',
        'native_symbol': 'ETH',
        'native_decimals': 18,
    },
    43114: {
        'name': 'Avalanche',
        'key': 'ava',
        'native_symbol': 'AVAX',
        'native_decimals': 18,
    },
}

# Step execution statuses reported by the routing service
STATUS_PENDING = 'PENDING'
STATUS_ACTION_REQUIRED = 'ACTION_REQUIRED'
STATUS_DONE = 'DONE'
STATUS_FAILED = 'FAILED'
TERMINAL_STEP_STATUSES = frozenset({STATUS_DONE, STATUS_FAILED})
"""Key-based wallet backed by a secret phrase."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict

from eth_account import Account
from eth_account.messages import encode_defunct
from eth_utils import ValidationError

from ..core.errors import ConfigurationError


def _hex(value: Any) -> str:
    return "0x" + bytes(value).hex()


class Signer(ABC):
    """Signs transactions and message hashes for one address."""

    @property
    @abstractmethod
    def address(self) -> str:
        pass

    @abstractmethod
    def sign_transaction(self, tx: Dict[str, Any]) -> str:
        """Return the raw signed transaction as 0x-prefixed hex."""
        pass

    @abstractmethod
    def sign_message_hash(self, message_hash: str) -> str:
        """EIP-191 personal signature over a 32-byte hash."""
        pass


class MnemonicSigner(Signer):
    def __init__(self, mnemonic: str, derivation_path: str = "m/44'/60'/0'/0/0") -> None:
        if not mnemonic or not mnemonic.strip():
            raise ConfigurationError("Secret phrase is required to derive the wallet", missing=["mnemonic"])
        Account.enable_unaudited_hdwallet_features()
        try:
            self._account = Account.from_mnemonic(mnemonic.strip(), account_path=derivation_path)
        except (ValueError, ValidationError) as exc:
            raise ConfigurationError(f"Secret phrase could not be used: {exc}") from exc

    @property
    def address(self) -> str:
        return self._account.address

    def sign_transaction(self, tx: Dict[str, Any]) -> str:
        signed = self._account.sign_transaction(tx)
        raw = getattr(signed, "raw_transaction", None) or getattr(signed, "rawTransaction")
        return _hex(raw)

    def sign_message_hash(self, message_hash: str) -> str:
        digest = bytes.fromhex(message_hash[2:] if message_hash.startswith("0x") else message_hash)
        signed = self._account.sign_message(encode_defunct(primitive=digest))
        return _hex(signed.signature)

"""
Wallet capability used by the executor.

Signing and submission are done by an external wallet (browser extension,
hardware device, custodial signer). The engine only needs these three members.
"""

from typing import Protocol

class Wallet(Protocol):
    @property
    def connected(self) -> bool: ...

    async def sign_tx(self, unsigned_tx: str, partial: bool = True) -> str:
        """Return the signed CBOR. May wait indefinitely on user approval."""
        ...

    async def submit_tx(self, signed_tx: str) -> str:
        """Broadcast a signed transaction and return its hash"""
        ...

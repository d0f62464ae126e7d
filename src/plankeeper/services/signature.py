"""Ed25519 signature verification for wallet logins."""
from __future__ import annotations

import re

from nacl.exceptions import BadSignatureError
from nacl.signing import VerifyKey

from plankeeper.core.errors import InvalidWalletError

PUBKEY_LENGTH_BYTES = 32
SIGNATURE_LENGTH_BYTES = 64

_WALLET_RE = re.compile(rf"[0-9a-fA-F]{{{PUBKEY_LENGTH_BYTES * 2}}}")
_SIGNATURE_RE = re.compile(rf"[0-9a-fA-F]{{{SIGNATURE_LENGTH_BYTES * 2}}}")


def normalize_wallet(wallet: str) -> str:
    """Return the canonical (lowercase hex) form of ``wallet``.

    Raises:
        InvalidWalletError: If ``wallet`` is not 64 hex characters.
    """
    if not isinstance(wallet, str) or not _WALLET_RE.fullmatch(wallet):
        raise InvalidWalletError("Wallet must be a hex-encoded 32-byte Ed25519 public key")
    return wallet.lower()


def decode_signature(signature_hex: str) -> bytes | None:
    """Decode a hex signature, returning ``None`` when it is malformed."""
    if not isinstance(signature_hex, str) or not _SIGNATURE_RE.fullmatch(signature_hex):
        return None
    return bytes.fromhex(signature_hex)


class SignatureVerifier:
    """Checks that a message was signed by the key a wallet encodes.

    The wallet string is the public key, so no registry lookup is involved.
    Verification never raises for bad input; it answers ``False``.
    """

    def verify(self, wallet: str, message: bytes, signature: bytes | str) -> bool:
        """Verify ``signature`` over the exact ``message`` bytes.

        Args:
            wallet: Hex-encoded 32-byte Ed25519 public key.
            message: Bytes exactly as issued to the client.
            signature: Raw 64-byte signature or its hex encoding.

        Returns:
            True if the signature is valid for ``message`` under ``wallet``.
        """
        try:
            pubkey_bytes = bytes.fromhex(normalize_wallet(wallet))
        except InvalidWalletError:
            return False

        if isinstance(signature, str):
            decoded = decode_signature(signature)
            if decoded is None:
                return False
            signature = decoded
        if len(signature) != SIGNATURE_LENGTH_BYTES:
            return False

        try:
            VerifyKey(pubkey_bytes).verify(message, signature)
        except (BadSignatureError, ValueError, TypeError):
            return False
        return True


__all__ = [
    "PUBKEY_LENGTH_BYTES",
    "SIGNATURE_LENGTH_BYTES",
    "SignatureVerifier",
    "decode_signature",
    "normalize_wallet",
]

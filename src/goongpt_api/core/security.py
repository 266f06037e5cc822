"""Signature utilities built on Ed25519 primitives.

Wallet addresses are Solana public keys: base58 text decoding to 32 raw
bytes. Phantom signs the UTF-8 bytes of a challenge message and the client
transports the 64-byte detached signature as standard base64.
"""
from __future__ import annotations

import base64
import binascii
import time

from nacl.exceptions import BadSignatureError
from nacl.signing import VerifyKey
from solders.pubkey import Pubkey

PUBKEY_LENGTH_BYTES = 32
SIGNATURE_LENGTH_BYTES = 64

CHALLENGE_PREAMBLE = "Sign this message to authenticate with GoonGPT"


def verify(message: bytes, signature: bytes, public_key: bytes) -> bool:
    """Verify a detached Ed25519 signature.

    Args:
        message: Exact bytes that were signed on the client.
        signature: Raw 64-byte detached signature.
        public_key: Raw 32-byte public key.

    Returns:
        True if the signature is valid for `message` under `public_key`; False otherwise.
    """
    if len(public_key) != PUBKEY_LENGTH_BYTES or len(signature) != SIGNATURE_LENGTH_BYTES:
        return False
    try:
        VerifyKey(public_key).verify(message, signature)
        return True
    except (BadSignatureError, ValueError, TypeError):
        return False


def decode_wallet_address(wallet_address: str) -> bytes:
    """Decode a base58 wallet address into raw public key bytes.

    Raises:
        ValueError: If the address is not a valid 32-byte base58 public key.
    """
    try:
        return bytes(Pubkey.from_string(wallet_address.strip()))
    except Exception as err:
        raise ValueError(f"Invalid wallet address: {wallet_address!r}") from err


def canonical_wallet_address(wallet_address: str) -> str:
    """Return the base58 form of the decoded key, with surrounding whitespace gone.

    Raises:
        ValueError: If the address is not a valid 32-byte base58 public key.
    """
    return str(Pubkey(decode_wallet_address(wallet_address)))


def decode_signature(signature_b64: str) -> bytes:
    """Decode a base64 transported signature.

    Raises:
        ValueError: If the value is not valid base64.
    """
    try:
        return base64.b64decode(signature_b64, validate=True)
    except (binascii.Error, ValueError) as err:
        raise ValueError("Invalid base64 signature") from err


def is_valid_wallet_address(wallet_address: str) -> bool:
    try:
        decode_wallet_address(wallet_address)
    except ValueError:
        return False
    return True


def verify_wallet_signature(wallet_address: str, signature_b64: str, message: str) -> bool:
    """Return True if `wallet_address` signed `message`.

    Any malformed input (bad address, bad base64, wrong lengths) is reported as
    a failed verification rather than raised.
    """
    try:
        public_key = decode_wallet_address(wallet_address)
        signature = decode_signature(signature_b64)
    except ValueError:
        return False
    return verify(message.encode("utf-8"), signature, public_key)


def build_challenge_message(wallet_address: str, timestamp_ms: int | None = None) -> str:
    """Return the human-readable challenge a wallet is asked to sign."""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"{CHALLENGE_PREAMBLE}\n\nWallet: {wallet_address}\nTimestamp: {timestamp_ms}"

# tests/helpers.py
"""Shared test doubles: a settable clock and Ed25519 wallets."""

from __future__ import annotations

import base64
from dataclasses import dataclass

from nacl.signing import SigningKey
from solders.pubkey import Pubkey

from goongpt_api.core.security import build_challenge_message

# 2025-10-09T08:53:20Z
START_TIME = 1_760_000_000.0


class FakeClock:
    """Settable stand-in for `time.time`."""

    def __init__(self, now: float = START_TIME) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@dataclass
class Wallet:
    """An Ed25519 keypair posing as a Solana wallet."""

    signing_key: SigningKey

    @classmethod
    def generate(cls) -> Wallet:
        return cls(SigningKey.generate())

    @property
    def address(self) -> str:
        return str(Pubkey(bytes(self.signing_key.verify_key)))

    def sign(self, message: str) -> str:
        signature = self.signing_key.sign(message.encode("utf-8")).signature
        return base64.b64encode(signature).decode("ascii")

    def auth_payload(self, message: str | None = None) -> dict[str, str]:
        message = message or build_challenge_message(self.address, 1_760_000_000_000)
        return {
            "wallet_address": self.address,
            "signed_message": self.sign(message),
            "message": message,
        }

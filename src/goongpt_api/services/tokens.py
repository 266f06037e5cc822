"""Token earning with a per-user daily cap and a short transaction history."""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable
from datetime import date, datetime
from typing import Any

from goongpt_api.core.errors import DailyLimitReached, NotFoundError, StoreUnavailableError
from goongpt_api.db.time import from_timestamp
from goongpt_api.schemas.tokens import EarnTokensResponse, TokenDataResponse, TokenTransaction
from goongpt_api.schemas.user import User
from goongpt_api.services.users import UserStore
from goongpt_api.storage.base import KeyValueStore

logger = logging.getLogger(__name__)

DEFAULT_DAILY_LIMIT = 100
HISTORY_KEPT = 50
HISTORY_SHOWN = 10
_MAX_APPEND_ATTEMPTS = 5


def _transactions_key(user_id: str) -> str:
    return f"transactions:{user_id}"


def _earned_today(user: User, today: date) -> int:
    last = user.last_token_earn_date
    if last is None or last.date() != today:
        return 0
    return user.daily_tokens_earned


class TokenLedger:
    """Awards tokens to users and reports their balances.

    The daily counter resets on the first earn or read of a new UTC day.
    """

    def __init__(
        self,
        users: UserStore,
        store: KeyValueStore,
        daily_limit: int = DEFAULT_DAILY_LIMIT,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.users = users
        self._store = store
        self.daily_limit = daily_limit
        self._clock = clock

    def _now(self) -> datetime:
        return from_timestamp(self._clock())

    def earn(self, user_id: str, amount: int, action: str = "Activity") -> EarnTokensResponse:
        """Award up to `amount` tokens, capped by what is left of today's limit.

        The transaction log is written after the balance and is best effort.

        Raises:
            NotFoundError: If the user does not exist.
            DailyLimitReached: If nothing is left of today's limit.
        """
        now = self._now()
        awarded = 0

        def apply(user: User) -> dict[str, Any]:
            nonlocal awarded
            earned = _earned_today(user, now.date())
            remaining = self.daily_limit - earned
            if remaining <= 0:
                raise DailyLimitReached(
                    f"Daily token limit reached. You can earn up to {self.daily_limit} tokens per day."
                )
            awarded = min(amount, remaining)
            return {
                "token_balance": user.token_balance + awarded,
                "total_tokens_earned": user.total_tokens_earned + awarded,
                "daily_tokens_earned": earned + awarded,
                "last_token_earn_date": now,
            }

        user = self.users.mutate(user_id, apply)
        transaction = TokenTransaction(
            id=str(uuid.uuid4()),
            user_id=user_id,
            amount=awarded,
            action=action,
            created_at=now,
        )
        # Balance is already committed at this point; history is best effort.
        try:
            self._append(transaction)
        except StoreUnavailableError:
            logger.error("Transaction %s missing from history for user %s", transaction.id, user_id, exc_info=True)
        logger.info("User %s earned %d tokens for %s", user_id, awarded, action)

        return EarnTokensResponse(
            tokens_earned=awarded,
            new_balance=user.token_balance,
            daily_earned=user.daily_tokens_earned,
            daily_limit=self.daily_limit,
            daily_remaining=self.daily_limit - user.daily_tokens_earned,
            transaction=transaction,
        )

    def data(self, user_id: str) -> TokenDataResponse:
        """Balances, today's progress and the most recent transactions.

        Raises:
            NotFoundError: If the user does not exist.
        """
        user = self.users.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")

        today = self._now().date()
        if user.daily_tokens_earned and _earned_today(user, today) == 0:
            user = self.users.mutate(user_id, lambda _user: {"daily_tokens_earned": 0})

        daily = _earned_today(user, today)
        return TokenDataResponse(
            token_balance=user.token_balance,
            total_tokens_earned=user.total_tokens_earned,
            daily_tokens_earned=daily,
            credits_balance=user.credits_balance,
            daily_limit=self.daily_limit,
            daily_remaining=max(0, self.daily_limit - daily),
            transactions=self.history(user_id)[:HISTORY_SHOWN],
        )

    def history(self, user_id: str) -> list[TokenTransaction]:
        """Newest first."""
        entries = self._store.get(_transactions_key(user_id)) or []
        return [TokenTransaction.model_validate(entry) for entry in entries]

    def _append(self, transaction: TokenTransaction) -> None:
        key = _transactions_key(transaction.user_id)
        entry = transaction.model_dump(mode="json")
        for _ in range(_MAX_APPEND_ATTEMPTS):
            current = self._store.get(key)
            if current is None:
                if self._store.add(key, [entry]):
                    return
                continue
            if self._store.compare_and_set(key, current, [entry, *current][:HISTORY_KEPT]):
                return
        logger.error("Could not record transaction %s for user %s", transaction.id, transaction.user_id)
        raise StoreUnavailableError()

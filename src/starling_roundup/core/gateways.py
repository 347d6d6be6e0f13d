"""Ports the round-up workflow calls into. StarlingClient implements all three."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from ..starling.models import Account, Balance, FeedItem, SavingsGoal, TransferReceipt


class AccountGateway(Protocol):
    def list_accounts(self) -> list[Account] | None:
        """Return the user's accounts in upstream order, or None if the response is unusable."""

    def effective_balance(self, account_id: UUID) -> Balance | None:
        """Return the current effective balance of an account."""


class GoalGateway(Protocol):
    def list_goals(self, account_id: UUID) -> list[SavingsGoal] | None:
        """Return all savings goals of an account."""

    def create_goal(
        self, account_id: UUID, name: str, currency: str, target_minor_units: int
    ) -> SavingsGoal | None:
        """Create a savings goal and return it."""

    def transfer(
        self,
        account_id: UUID,
        goal_id: UUID,
        idempotency_token: UUID,
        amount_minor_units: int,
    ) -> TransferReceipt | None:
        """Move money into a savings goal; the token deduplicates retried requests."""


class TransactionGateway(Protocol):
    def fetch_between(
        self, account_id: UUID, category_id: UUID, dt_from: datetime, dt_to: datetime
    ) -> list[FeedItem] | None:
        """Return feed items of one category settled within [dt_from, dt_to]."""

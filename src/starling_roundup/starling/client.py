from __future__ import annotations

import logging
from datetime import datetime
from uuid import UUID

import httpx
from pydantic import ValidationError

from .. import __version__
from ..core.errors import error_for_status
from ..core.time_ranges import DateRange
from .models import (
    Account,
    AccountsResponse,
    Balance,
    CurrencyAndAmount,
    FeedItem,
    SavingsGoal,
    SavingsGoalRequest,
    SavingsGoalsResponse,
    TopUpRequest,
    TransferReceipt,
)

DEFAULT_BASE_URL = "https://api-sandbox.starlingbank.com"

logger = logging.getLogger("starling_roundup.starling")


class StarlingClient:
    """
    Thin Starling Bank API v2 client.

    Each public method is a single attempt: non-2xx responses raise a
    DomainError classified by status range, and httpx transport errors
    propagate as-is so a RetryPolicy can decide what to do with them.
    Methods return None when the response envelope is missing.
    """

    ACCOUNTS_PATH = "/api/v2/accounts"
    BALANCE_PATH = "/api/v2/accounts/{account_uid}/balance"
    SAVINGS_GOALS_PATH = "/api/v2/account/{account_uid}/savings-goals"
    ADD_MONEY_PATH = "/api/v2/account/{account_uid}/savings-goals/{goal_uid}/add-money/{transfer_uid}"
    FEED_BETWEEN_PATH = (
        "/api/v2/feed/account/{account_uid}/category/{category_uid}/transactions-between"
    )

    def __init__(
        self,
        token: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout_s: float = 5.0,
        currency: str = "GBP",
        transport: httpx.BaseTransport | None = None,
    ):
        if not token:
            raise ValueError("STARLING_API_TOKEN is not set")
        self._base_url = base_url.rstrip("/")
        self.currency = currency

        self._client = httpx.Client(
            base_url=self._base_url,
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/json",
                "User-Agent": f"starling-roundup/{__version__}",
            },
            timeout=httpx.Timeout(timeout_s),
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def _request_json(self, method: str, path: str, **kwargs) -> object:
        resp = self._client.request(method, path, **kwargs)

        error = error_for_status(resp.status_code, resp.text[:200])
        if error is not None:
            logger.debug("%s %s -> %s", method, path, resp.status_code)
            raise error

        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError:
            logger.warning("%s %s returned a non-JSON body", method, path)
            return None

    def list_accounts(self) -> list[Account] | None:
        data = self._request_json("GET", self.ACCOUNTS_PATH)
        if not isinstance(data, dict):
            return None
        return AccountsResponse.model_validate(data).accounts

    def effective_balance(self, account_id: UUID) -> Balance | None:
        data = self._request_json("GET", self.BALANCE_PATH.format(account_uid=account_id))
        if not isinstance(data, dict) or not isinstance(data.get("effectiveBalance"), dict):
            return None
        return Balance.model_validate(data)

    def list_goals(self, account_id: UUID) -> list[SavingsGoal] | None:
        data = self._request_json("GET", self.SAVINGS_GOALS_PATH.format(account_uid=account_id))
        if not isinstance(data, dict):
            return None
        return SavingsGoalsResponse.model_validate(data).savingsGoalList

    def create_goal(
        self, account_id: UUID, name: str, currency: str, target_minor_units: int
    ) -> SavingsGoal | None:
        body = SavingsGoalRequest(
            name=name,
            currency=currency,
            target=CurrencyAndAmount(currency=currency, minorUnits=target_minor_units),
        )
        data = self._request_json(
            "POST",
            self.SAVINGS_GOALS_PATH.format(account_uid=account_id),
            json=body.model_dump(),
        )
        if not isinstance(data, dict) or not data.get("savingsGoalUid") or data.get("success") is False:
            return None

        # the create endpoint only echoes the id back
        goal = SavingsGoal.model_validate({"name": name, "currency": currency, **data})
        logger.info("Created new savings goal %s for account %s", goal.goal_id, account_id)
        return goal

    def transfer(
        self,
        account_id: UUID,
        goal_id: UUID,
        idempotency_token: UUID,
        amount_minor_units: int,
    ) -> TransferReceipt | None:
        body = TopUpRequest(amount=CurrencyAndAmount(currency=self.currency, minorUnits=amount_minor_units))
        path = self.ADD_MONEY_PATH.format(
            account_uid=account_id, goal_uid=goal_id, transfer_uid=idempotency_token
        )
        data = self._request_json("PUT", path, json=body.model_dump())
        if not isinstance(data, dict):
            return None
        return TransferReceipt.model_validate(data)

    def fetch_between(
        self, account_id: UUID, category_id: UUID, dt_from: datetime, dt_to: datetime
    ) -> list[FeedItem] | None:
        path = self.FEED_BETWEEN_PATH.format(account_uid=account_id, category_uid=category_id)
        min_ts, max_ts = DateRange(dt_from=dt_from, dt_to=dt_to).to_starling()
        params = {"minTransactionTimestamp": min_ts, "maxTransactionTimestamp": max_ts}
        data = self._request_json("GET", path, params=params)
        if not isinstance(data, dict):
            return None

        batch = data.get("feedItems")
        if not isinstance(batch, list):
            return None

        out: list[FeedItem] = []
        for x in batch:
            if not isinstance(x, dict):
                continue
            try:
                out.append(FeedItem.model_validate(x))
            except ValidationError as e:
                logger.debug("Skipping malformed feed item %s: %s", x.get("feedItemUid"), e)
                continue
        return out

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable
from uuid import UUID

from ..starling.models import Account, FeedItem, SavingsGoal
from .errors import DomainError, account_not_found, insufficient_balance, invalid_account_data
from .gateways import AccountGateway, GoalGateway, TransactionGateway
from .retry import RetryPolicy
from .roundup import RoundUpResult
from .time_ranges import range_last_days, utc_now

ROUND_UP_GOAL_NAME = "Round Up Savings"
GOAL_CURRENCY = "GBP"
GOAL_TARGET_MINOR_UNITS = 100_000
LOOKBACK_DAYS = 7


class WorkflowState(str, Enum):
    START = "START"
    ACCOUNT_RESOLVED = "ACCOUNT_RESOLVED"
    CATEGORY_RESOLVED = "CATEGORY_RESOLVED"
    GOAL_RESOLVED = "GOAL_RESOLVED"
    TRANSACTIONS_FETCHED = "TRANSACTIONS_FETCHED"
    AMOUNT_COMPUTED = "AMOUNT_COMPUTED"
    BALANCE_CHECKED = "BALANCE_CHECKED"
    TRANSFERRED = "TRANSFERRED"
    DONE = "DONE"
    FAILED = "FAILED"


@dataclass(frozen=True)
class RoundUpOutcome:
    state: WorkflowState
    trace: tuple[WorkflowState, ...]
    amount_minor_units: int = 0
    transfer_id: str | None = None
    error: DomainError | None = None

    @property
    def ok(self) -> bool:
        return self.state is WorkflowState.DONE

    @property
    def transferred(self) -> bool:
        return WorkflowState.TRANSFERRED in self.trace


@dataclass
class _Run:
    trace: list[WorkflowState] = field(default_factory=lambda: [WorkflowState.START])
    amount_minor_units: int = 0
    transfer_id: str | None = None

    def advance(self, state: WorkflowState) -> None:
        self.trace.append(state)


class RoundUpOrchestrator:
    """
    Runs one round-up pass for the default account:

    - resolve the default account and its default category
    - find (or create) the "Round Up Savings" goal
    - fetch the last week of transactions and sum their round-ups
    - if anything is owed and the effective balance covers it, transfer it

    Every remote call goes through the retry policy. The first terminal
    failure stops the run; nothing already done is compensated.
    Instances hold no per-run state and can serve concurrent runs.
    """

    def __init__(
        self,
        accounts: AccountGateway,
        goals: GoalGateway,
        transactions: TransactionGateway,
        retry: RetryPolicy | None = None,
        *,
        lookback_days: int = LOOKBACK_DAYS,
        clock: Callable[[], datetime] = utc_now,
        token_factory: Callable[[], UUID] = uuid.uuid4,
        logger: logging.Logger | None = None,
    ):
        self._accounts = accounts
        self._goals = goals
        self._transactions = transactions
        self._retry = retry or RetryPolicy()
        self._lookback_days = lookback_days
        self._clock = clock
        self._token_factory = token_factory
        self._logger = logger or logging.getLogger("starling_roundup.workflow")

    def run(self) -> RoundUpOutcome:
        self._logger.info("Starting round-up transaction process")
        run = _Run()
        try:
            self._execute(run)
        except DomainError as e:
            self._logger.error("Round-up failed [%s]: %s", e.kind.value, e.message)
            return self._finish(run, WorkflowState.FAILED, error=e)
        except Exception as e:
            self._logger.exception("Round-up failed with an unexpected error")
            error = invalid_account_data(f"Round-up workflow failed: {e}")
            return self._finish(run, WorkflowState.FAILED, error=error)

        return self._finish(run, WorkflowState.DONE)

    def _finish(self, run: _Run, state: WorkflowState, error: DomainError | None = None) -> RoundUpOutcome:
        run.advance(state)
        return RoundUpOutcome(
            state=state,
            trace=tuple(run.trace),
            amount_minor_units=run.amount_minor_units,
            transfer_id=run.transfer_id,
            error=error,
        )

    def _execute(self, run: _Run) -> None:
        account = self._resolve_account()
        run.advance(WorkflowState.ACCOUNT_RESOLVED)

        category_id = self._resolve_category(account)
        run.advance(WorkflowState.CATEGORY_RESOLVED)

        goal = self._resolve_goal(account.account_id)
        run.advance(WorkflowState.GOAL_RESOLVED)

        items = self._fetch_transactions(account.account_id, category_id)
        run.advance(WorkflowState.TRANSACTIONS_FETCHED)

        result = RoundUpResult.from_items(items)
        run.amount_minor_units = result.total_minor_units
        run.advance(WorkflowState.AMOUNT_COMPUTED)
        self._logger.info(
            "Calculated total round-up amount: %s from %s transactions",
            result.total_minor_units,
            result.items_count,
        )

        if result.total_minor_units == 0:
            self._logger.info("No round-up amount to transfer")
            return

        self._check_balance(account.account_id, result.total_minor_units)
        run.advance(WorkflowState.BALANCE_CHECKED)

        run.transfer_id = self._transfer(account.account_id, goal.goal_id, result.total_minor_units)
        run.advance(WorkflowState.TRANSFERRED)
        self._logger.info("Round-up process completed successfully")

    def _resolve_account(self) -> Account:
        accounts = self._retry.with_retry(self._accounts.list_accounts, "get accounts")
        if accounts is None or not isinstance(accounts, (list, tuple)):
            raise invalid_account_data("Account data not valid")
        if not accounts:
            raise account_not_found()

        account = accounts[0]
        if getattr(account, "account_id", None) is None:
            raise invalid_account_data("Account data not valid")
        self._logger.debug("Using default account: %s", account.account_id)
        return account

    def _resolve_category(self, account: Account) -> UUID:
        if account.default_category_id is None:
            raise invalid_account_data("Account does not have default category")
        self._logger.debug("Using default category: %s", account.default_category_id)
        return account.default_category_id

    def _resolve_goal(self, account_id: UUID) -> SavingsGoal:
        goals = self._retry.with_retry(lambda: self._goals.list_goals(account_id), "get savings goals")
        if goals is None or not isinstance(goals, (list, tuple)):
            raise invalid_account_data("Get savings goals response invalid")

        for goal in goals:
            if goal.name == ROUND_UP_GOAL_NAME:
                self._logger.debug("Found existing %s goal: %s", ROUND_UP_GOAL_NAME, goal.goal_id)
                return goal

        self._logger.info("No %s goal found, creating a new one for account %s", ROUND_UP_GOAL_NAME, account_id)
        created = self._retry.with_retry(
            lambda: self._goals.create_goal(
                account_id, ROUND_UP_GOAL_NAME, GOAL_CURRENCY, GOAL_TARGET_MINOR_UNITS
            ),
            "create savings goal",
        )
        if created is None or getattr(created, "goal_id", None) is None:
            raise invalid_account_data("Create savings goal response invalid")
        return created

    def _fetch_transactions(self, account_id: UUID, category_id: UUID) -> list[FeedItem]:
        window = range_last_days(self._lookback_days, now=self._clock())
        self._logger.debug("Fetching transactions from %s to %s", window.dt_from, window.dt_to)

        items = self._retry.with_retry(
            lambda: self._transactions.fetch_between(account_id, category_id, window.dt_from, window.dt_to),
            "get transactions",
        )
        # the read path is lenient: an unusable feed means nothing to round up
        if not isinstance(items, (list, tuple)):
            self._logger.warning("Transaction feed response unusable, treating as empty")
            return []
        return list(items)

    def _check_balance(self, account_id: UUID, amount: int) -> None:
        balance = self._retry.with_retry(
            lambda: self._accounts.effective_balance(account_id), "get effective balance"
        )
        effective = getattr(balance, "effective_minor_units", None)
        if isinstance(effective, bool) or not isinstance(effective, int):
            raise invalid_account_data("Failed to fetch account balance")

        self._logger.debug("Current account balance: %s", effective)
        if effective < amount:
            self._logger.warning(
                "Insufficient balance (%s) to transfer round-up amount (%s)", effective, amount
            )
            raise insufficient_balance()

    def _transfer(self, account_id: UUID, goal_id: UUID, amount: int) -> str:
        # one token per logical transfer, shared by every retried attempt
        token = self._token_factory()
        self._logger.info("Transferring %s to savings goal %s (transfer %s)", amount, goal_id, token)

        receipt = self._retry.with_retry(
            lambda: self._goals.transfer(account_id, goal_id, token, amount),
            "transfer to savings goal",
        )
        transfer_id = getattr(receipt, "transfer_id", None)
        if not transfer_id:
            raise invalid_account_data("Transfer money to saving goal response invalid")
        return transfer_id

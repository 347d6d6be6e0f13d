from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import AliasChoices, AliasPath, BaseModel, ConfigDict, Field

Direction = Literal["IN", "OUT"]

_VALUE = ConfigDict(frozen=True, extra="ignore")


def _alias(*choices: str | AliasPath) -> AliasChoices:
    return AliasChoices(*choices)


class CurrencyAndAmount(BaseModel):
    model_config = _VALUE

    currency: str
    minorUnits: int


class Account(BaseModel):
    model_config = _VALUE

    account_id: UUID = Field(validation_alias=_alias("account_id", "accountUid"))
    default_category_id: UUID | None = Field(
        default=None, validation_alias=_alias("default_category_id", "defaultCategory")
    )
    type: str | None = Field(default=None, validation_alias=_alias("type", "accountType"))
    currency: str | None = None


class Balance(BaseModel):
    """Effective balance snapshot; only valid for the instant it was fetched."""

    model_config = _VALUE

    effective_minor_units: int = Field(
        validation_alias=_alias("effective_minor_units", AliasPath("effectiveBalance", "minorUnits"))
    )
    currency: str | None = Field(
        default=None, validation_alias=_alias("currency", AliasPath("effectiveBalance", "currency"))
    )


class FeedItem(BaseModel):
    model_config = _VALUE

    id: UUID = Field(validation_alias=_alias("id", "feedItemUid"))
    category_id: UUID | None = Field(default=None, validation_alias=_alias("category_id", "categoryUid"))
    amount_minor_units: int = Field(
        validation_alias=_alias("amount_minor_units", AliasPath("amount", "minorUnits"))
    )
    currency: str | None = Field(
        default=None, validation_alias=_alias("currency", AliasPath("amount", "currency"))
    )
    direction: Direction | None = None
    transaction_time: datetime | None = Field(
        default=None, validation_alias=_alias("transaction_time", "transactionTime")
    )
    settlement_time: datetime | None = Field(
        default=None, validation_alias=_alias("settlement_time", "settlementTime")
    )
    updated_at: datetime | None = Field(default=None, validation_alias=_alias("updated_at", "updatedAt"))
    source: str | None = None
    status: str | None = None


class SavingsGoal(BaseModel):
    model_config = _VALUE

    goal_id: UUID = Field(validation_alias=_alias("goal_id", "savingsGoalUid"))
    name: str | None = None
    currency: str | None = Field(
        default=None,
        validation_alias=_alias(
            "currency", AliasPath("totalSaved", "currency"), AliasPath("target", "currency")
        ),
    )
    saved_minor_units: int = Field(
        default=0, validation_alias=_alias("saved_minor_units", AliasPath("totalSaved", "minorUnits"))
    )


class TransferReceipt(BaseModel):
    model_config = _VALUE

    transfer_id: str | None = Field(default=None, validation_alias=_alias("transfer_id", "transferUid"))
    success: bool | None = None


class AccountsResponse(BaseModel):
    accounts: list[Account] | None = None


class SavingsGoalsResponse(BaseModel):
    savingsGoalList: list[SavingsGoal] | None = None


class SavingsGoalRequest(BaseModel):
    name: str
    currency: str
    target: CurrencyAndAmount


class TopUpRequest(BaseModel):
    amount: CurrencyAndAmount

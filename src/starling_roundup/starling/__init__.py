from .client import StarlingClient
from .models import Account, Balance, FeedItem, SavingsGoal, TransferReceipt

__all__ = [
    "StarlingClient",
    "Account",
    "Balance",
    "FeedItem",
    "SavingsGoal",
    "TransferReceipt",
]

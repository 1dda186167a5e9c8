from petal_economy.db.models.balances import Balance
from petal_economy.db.models.config_entries import ConfigEntry
from petal_economy.db.models.redemption_codes import RedemptionCode
from petal_economy.db.models.referrals import Referral
from petal_economy.db.models.transactions import Transaction
from petal_economy.db.models.users import User

__all__ = [
    "Balance",
    "ConfigEntry",
    "RedemptionCode",
    "Referral",
    "Transaction",
    "User",
]

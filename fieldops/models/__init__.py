from .user import User
from .profile import ConsoleProfile, ProfileMember, SeasonConfig, UpsellConfig
from .worker import Worker
from .booking import Booking
from .payout import PayoutRecord, PayoutAdjustment

__all__ = [
    "User",
    "ConsoleProfile", "ProfileMember", "SeasonConfig", "UpsellConfig",
    "Worker", "Booking",
    "PayoutRecord", "PayoutAdjustment",
]

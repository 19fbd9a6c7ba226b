from app.models.referral import ReferralCode, ReferralEntry, UserRecord

__all__ = [
    "ReferralCode",
    "ReferralEntry",
    "UserRecord",
]

from app.domain.referral_operations import referral_ops

__all__ = [
    "referral_ops",
]

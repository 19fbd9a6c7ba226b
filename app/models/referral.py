"""Row models for the referral tables.

The tables are owned by the signup flow, not by this service, so these are
plain (non-table) SQLModel schemas parsed from PostgREST rows.
"""

from datetime import datetime
from typing import Any

from sqlmodel import SQLModel

# Some deployments name the counter "uses" instead of "total_uses"
FALLBACK_USES_COLUMN = "uses"

RowId = int | str


def parse_counter(value: Any) -> int | None:
    """Coerce a counter cell to int, or None when absent or not numeric."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
        return int(number) if number.is_integer() else None
    return None


class ReferralCode(SQLModel):
    """A referral code and its authoritative usage counter."""

    id: RowId
    code: str
    total_uses: int | None = None
    is_active: bool = True
    referrer_id: RowId | None = None
    created_at: datetime | None = None

    @classmethod
    def from_row(
        cls,
        row: dict[str, Any],
        code_column: str = "code",
        uses_column: str = "total_uses",
    ) -> "ReferralCode":
        raw_uses = row.get(uses_column)
        if raw_uses is None:
            raw_uses = row.get(FALLBACK_USES_COLUMN)

        return cls(
            id=row["id"],
            code=row[code_column],
            total_uses=parse_counter(raw_uses),
            is_active=bool(row.get("is_active", True)),
            referrer_id=row.get("referrer_id"),
            created_at=row.get("created_at"),
        )


class UserRecord(SQLModel):
    """A user profile with its denormalized referral pointers."""

    id: RowId
    user_id: RowId | None = None
    email: str | None = None
    referral_code: str | None = None  # Code this user generated (they are the referrer)
    referral_code_used: str | None = None  # Code this user redeemed at signup
    referred_by: RowId | None = None
    created_at: datetime | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any], email_column: str = "school_email") -> "UserRecord":
        return cls(
            id=row["id"],
            user_id=row.get("user_id"),
            email=row.get(email_column),
            referral_code=row.get("referral_code"),
            referral_code_used=row.get("referral_code_used"),
            referred_by=row.get("referred_by"),
            created_at=row.get("created_at"),
        )


class ReferralEntry(SQLModel):
    """Row of the normalized referrals join table."""

    id: RowId | None = None
    referrer_id: RowId | None = None
    referred_user_id: RowId
    referral_code_id: RowId
    created_at: datetime | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "ReferralEntry":
        return cls(
            id=row.get("id"),
            referrer_id=row.get("referrer_id"),
            referred_user_id=row["referred_user_id"],
            referral_code_id=row["referral_code_id"],
            created_at=row.get("created_at"),
        )

"""Domain operations for referral codes, user profiles and the referrals join table."""

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

import httpx
from postgrest.exceptions import APIError
from supabase import Client

from app.config.settings import Settings, settings
from app.core.exceptions import ReferralStoreError
from app.models.referral import ReferralCode, ReferralEntry, RowId, UserRecord

logger = logging.getLogger(__name__)


@dataclass
class ReferralUses:
    """How many times a code was used, and by whom."""

    code: str
    uses: int = 0
    referred_emails: list[str] = field(default_factory=list)


def dedupe_emails(emails: Iterable[str | None]) -> list[str]:
    """Drop empty values and duplicates, keeping first-seen order."""
    return list(dict.fromkeys(email for email in emails if email))


class ReferralOperations:
    """Read and repair operations against the referral tables.

    Every method takes the Supabase client as its first argument so callers
    choose between the read-only client (lookups) and the service-role
    client (maintenance tasks).
    """

    def __init__(self, config: Settings | None = None) -> None:
        self.config = config or settings

    async def _execute(self, query: Any) -> list[dict[str, Any]]:
        """Run a PostgREST query off the event loop (supabase-py is synchronous)."""
        try:
            response = await asyncio.to_thread(query.execute)
        except APIError as e:
            message = e.message or str(e)
            logger.warning(f"Referral store query failed: {message}")
            raise ReferralStoreError(message) from e
        except httpx.HTTPError as e:
            logger.warning(f"Referral store unreachable: {e}")
            raise ReferralStoreError(str(e) or "Referral store unreachable") from e

        return list(response.data or [])

    def _user(self, row: dict[str, Any]) -> UserRecord:
        return UserRecord.from_row(row, email_column=self.config.user_email_column)

    def _code(self, row: dict[str, Any]) -> ReferralCode:
        return ReferralCode.from_row(
            row,
            code_column=self.config.referral_code_column,
            uses_column=self.config.referral_uses_column,
        )

    # ─────────────────────────────────────────────────────────────────────
    # Referral codes
    # ─────────────────────────────────────────────────────────────────────

    async def get_code(self, client: Client, code: str) -> ReferralCode | None:
        """Get a referral code by exact match."""
        rows = await self._execute(
            client.table(self.config.referral_codes_table)
            .select("*")
            .eq(self.config.referral_code_column, code)
            .limit(1)
        )
        return self._code(rows[0]) if rows else None

    async def get_codes(self, client: Client, only_used: bool = False) -> list[ReferralCode]:
        """Get all referral codes ordered by code, optionally only those with uses."""
        rows = await self._execute(
            client.table(self.config.referral_codes_table)
            .select("*")
            .order(self.config.referral_code_column)
        )
        codes = [self._code(row) for row in rows]
        # Filtered after parsing so rows counting in the fallback column qualify
        if only_used:
            codes = [code for code in codes if (code.total_uses or 0) > 0]
        return codes

    # ─────────────────────────────────────────────────────────────────────
    # User profiles
    # ─────────────────────────────────────────────────────────────────────

    async def get_users_using_code(self, client: Client, code: str) -> list[UserRecord]:
        """Users whose denormalized referral_code_used points at this code."""
        rows = await self._execute(
            client.table(self.config.user_profiles_table)
            .select("*")
            .eq("referral_code_used", code)
        )
        return [self._user(row) for row in rows]

    async def get_code_owners(self, client: Client, code: str) -> list[UserRecord]:
        """Users who generated this code (their referral_code field)."""
        rows = await self._execute(
            client.table(self.config.user_profiles_table).select("*").eq("referral_code", code)
        )
        return [self._user(row) for row in rows]

    async def get_users_referred_by(
        self,
        client: Client,
        referrer_ids: list[RowId],
    ) -> list[UserRecord]:
        """Users whose referred_by is one of the given referrer user ids."""
        if not referrer_ids:
            return []
        rows = await self._execute(
            client.table(self.config.user_profiles_table)
            .select("*")
            .in_("referred_by", referrer_ids)
        )
        return [self._user(row) for row in rows]

    async def get_users_by_ids(self, client: Client, user_ids: list[RowId]) -> list[UserRecord]:
        """Resolve auth user ids to profiles."""
        if not user_ids:
            return []
        rows = await self._execute(
            client.table(self.config.user_profiles_table).select("*").in_("user_id", user_ids)
        )
        return [self._user(row) for row in rows]

    async def set_code_used(self, client: Client, user: UserRecord, code: str) -> bool:
        """
        Set referral_code_used on a profile that has none yet.

        The update is guarded on referral_code_used IS NULL at the store, so a
        profile that already redeemed a code is never overwritten. Returns True
        if a row was updated.
        """
        rows = await self._execute(
            client.table(self.config.user_profiles_table)
            .update({"referral_code_used": code})
            .eq("id", user.id)
            .is_("referral_code_used", "null")
        )
        return bool(rows)

    # ─────────────────────────────────────────────────────────────────────
    # Referrals join table
    # ─────────────────────────────────────────────────────────────────────

    async def get_entries_for_code(self, client: Client, code_id: RowId) -> list[ReferralEntry]:
        """All join-table rows recorded against a referral code id."""
        rows = await self._execute(
            client.table(self.config.referrals_table).select("*").eq("referral_code_id", code_id)
        )
        return [ReferralEntry.from_row(row) for row in rows]

    async def entry_exists(
        self,
        client: Client,
        referred_user_id: RowId,
        code_id: RowId,
    ) -> bool:
        rows = await self._execute(
            client.table(self.config.referrals_table)
            .select("id")
            .eq("referred_user_id", referred_user_id)
            .eq("referral_code_id", code_id)
            .limit(1)
        )
        return bool(rows)

    async def create_entry(self, client: Client, entry: ReferralEntry) -> None:
        payload = entry.model_dump(mode="json", exclude_none=True, exclude={"id"})
        await self._execute(client.table(self.config.referrals_table).insert(payload))

    # ─────────────────────────────────────────────────────────────────────
    # Lookup
    # ─────────────────────────────────────────────────────────────────────

    async def _emails_from_entries(self, client: Client, code_id: RowId) -> list[str | None]:
        entries = await self.get_entries_for_code(client, code_id)
        user_ids = list(dict.fromkeys(entry.referred_user_id for entry in entries))
        users = await self.get_users_by_ids(client, user_ids)
        return [user.email for user in users]

    async def _emails_from_profiles(self, client: Client, code: str) -> list[str | None]:
        users = await self.get_users_using_code(client, code)
        return [user.email for user in users]

    async def get_referral_uses(self, client: Client, code: str) -> ReferralUses:
        """
        Resolve how many times a code was used and which users used it.

        Emails are merged from two sources: profiles whose referral_code_used
        matches, and the referrals join table resolved to profile emails.
        The reported count is the code's authoritative counter, falling back
        to the number of distinct emails when the counter is absent.

        Raises ReferralStoreError if the store fails.
        """
        referral_code = await self.get_code(client, code)
        if referral_code is None:
            return ReferralUses(code=code)

        from_profiles, from_entries = await asyncio.gather(
            self._emails_from_profiles(client, referral_code.code),
            self._emails_from_entries(client, referral_code.id),
        )
        emails = dedupe_emails([*from_profiles, *from_entries])

        uses = referral_code.total_uses
        if uses is None:
            uses = len(emails)

        return ReferralUses(code=code, uses=uses, referred_emails=emails)


referral_ops = ReferralOperations()

"""
One-time backfill: repair referral tracking for users who redeemed a code.

Some signups recorded only the referrer (profile.referred_by) and never set
referral_code_used or created a row in the referrals join table. For each
referral code this script:

1. Finds the referrers: profiles whose referral_code is the code, plus the
   code's own referrer_id when set
2. Finds the referred users: profiles referred by those referrers, and
   profiles that already have referral_code_used = code
3. Sets referral_code_used where it is still empty
4. Inserts the missing (referred_user_id, referral_code_id) join rows

This is idempotent - the profile update is guarded on referral_code_used
IS NULL and join rows are only inserted when absent, so a second run makes
no changes.

Usage:
    python -m app.tasks.backfill_referrals
    python -m app.tasks.backfill_referrals --dry-run
"""

import asyncio
import logging
import sys
from dataclasses import dataclass

from supabase import Client

from app.core.exceptions import ReferralStoreError
from app.domain.referral_operations import referral_ops
from app.models.referral import ReferralCode, ReferralEntry, RowId, UserRecord
from app.services.supabase import get_supabase_admin_client
from app.tasks.verify_referrals import verify_referrals

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)


@dataclass
class BackfillSummary:
    codes_checked: int = 0
    profiles_updated: int = 0
    entries_created: int = 0
    conflicts: int = 0  # Referred user already redeemed a different code
    missing_referrer: int = 0
    failures: int = 0


async def _referrer_ids(client: Client, code: ReferralCode) -> list[RowId]:
    owners = await referral_ops.get_code_owners(client, code.code)
    ids = [owner.user_id for owner in owners if owner.user_id is not None]
    if code.referrer_id is not None:
        ids.append(code.referrer_id)
    return list(dict.fromkeys(ids))


async def _backfill_user(
    client: Client,
    code: ReferralCode,
    user: UserRecord,
    referrer_ids: list[RowId],
    summary: BackfillSummary,
    dry_run: bool,
) -> None:
    if user.referral_code_used is None:
        if not dry_run and not await referral_ops.set_code_used(client, user, code.code):
            # Redeemed another code since it was read
            logger.info(f"  - {user.email} gained a referral_code_used concurrently, skipping")
            summary.conflicts += 1
            return
        logger.info(f"  ✓ Set referral_code_used={code.code} for {user.email}")
        summary.profiles_updated += 1
    elif user.referral_code_used != code.code:
        logger.info(f"  - {user.email} already has referral_code_used: {user.referral_code_used}")
        summary.conflicts += 1
        return

    if user.user_id is None:
        return
    if await referral_ops.entry_exists(client, user.user_id, code.id):
        return

    referrer_id = user.referred_by
    if referrer_id is None and referrer_ids:
        referrer_id = referrer_ids[0]
    if referrer_id is None:
        logger.warning(f"  ✗ No known referrer for {user.email} on code {code.code}, skipping entry")
        summary.missing_referrer += 1
        return

    if not dry_run:
        await referral_ops.create_entry(
            client,
            ReferralEntry(
                referrer_id=referrer_id,
                referred_user_id=user.user_id,
                referral_code_id=code.id,
                created_at=user.created_at,
            ),
        )
    logger.info(f"  ✓ Created referral entry for {user.email}")
    summary.entries_created += 1


async def _backfill_code(
    client: Client,
    code: ReferralCode,
    summary: BackfillSummary,
    dry_run: bool,
) -> None:
    referrer_ids = await _referrer_ids(client, code)
    referred = await referral_ops.get_users_referred_by(client, referrer_ids)
    redeemed = await referral_ops.get_users_using_code(client, code.code)

    users = {user.id: user for user in [*referred, *redeemed]}
    if not users:
        return

    logger.info(f"Code {code.code!r} (ID: {code.id}): {len(users)} referred users")
    for user in users.values():
        try:
            await _backfill_user(client, code, user, referrer_ids, summary, dry_run)
        except ReferralStoreError as e:
            logger.error(f"  ✗ Failed to backfill {user.email}: {e.message}")
            summary.failures += 1


async def backfill_referrals(client: Client | None = None, dry_run: bool = False) -> BackfillSummary:
    """
    Backfill referral_code_used and the referrals join table for every code.

    Failures on individual users are logged and counted; a failure to list
    the codes aborts the run.
    """
    client = client or get_supabase_admin_client()
    summary = BackfillSummary()

    logger.info(f"Starting referral backfill{' (dry run)' if dry_run else ''}...")
    codes = await referral_ops.get_codes(client)
    logger.info(f"Found {len(codes)} referral codes")

    for code in codes:
        summary.codes_checked += 1
        try:
            await _backfill_code(client, code, summary, dry_run)
        except ReferralStoreError as e:
            logger.error(f"Failed to load users for code {code.code!r}: {e.message}")
            summary.failures += 1

    logger.info("=" * 60)
    logger.info("Backfill complete!" if not dry_run else "Dry run complete, nothing written")
    logger.info(f"  Codes checked: {summary.codes_checked}")
    logger.info(f"  Profiles updated: {summary.profiles_updated}")
    logger.info(f"  Referral entries created: {summary.entries_created}")
    logger.info(f"  Users with a different code (left alone): {summary.conflicts}")
    logger.info(f"  Entries skipped (no known referrer): {summary.missing_referrer}")
    logger.info(f"  Failures: {summary.failures}")
    logger.info("=" * 60)
    return summary


async def run(dry_run: bool) -> None:
    client = get_supabase_admin_client()
    await backfill_referrals(client, dry_run=dry_run)
    logger.info("Running verification...")
    await verify_referrals(client)


def main() -> None:
    """Run the backfill, then verify."""
    asyncio.run(run(dry_run="--dry-run" in sys.argv))


if __name__ == "__main__":
    main()

"""Unit tests for the referral backfill task."""

from unittest.mock import AsyncMock, patch

import pytest

from app.domain.referral_operations import referral_ops
from app.tasks.backfill_referrals import backfill_referrals

from tests.helpers.mock_factories import make_profile, make_referral_code


def _profile(store, profile_id):
    return next(p for p in store.tables["user_profiles"] if p["id"] == profile_id)


class TestBackfillReferrals:
    @pytest.mark.asyncio
    async def test_repairs_missing_tracking(self, referral_store):
        summary = await backfill_referrals(referral_store)

        assert summary.codes_checked == 3
        assert summary.profiles_updated == 1
        assert summary.entries_created == 1
        assert summary.failures == 0

        # b had only a join row: referral_code_used is now set
        assert _profile(referral_store, 12)["referral_code_used"] == "SUMMER2025"

        # c had only referral_code_used: a join row now exists
        created = [r for r in referral_store.tables["referrals"] if r["referred_user_id"] == "u-c"]
        assert len(created) == 1
        assert created[0]["referral_code_id"] == 1
        assert created[0]["referrer_id"] == "u-ref"

    @pytest.mark.asyncio
    async def test_second_run_changes_nothing(self, referral_store):
        await backfill_referrals(referral_store)
        referral_store.executed.clear()

        summary = await backfill_referrals(referral_store)

        assert summary.profiles_updated == 0
        assert summary.entries_created == 0
        assert referral_store.writes() == []

    @pytest.mark.asyncio
    async def test_dry_run_writes_nothing(self, referral_store):
        summary = await backfill_referrals(referral_store, dry_run=True)

        assert summary.profiles_updated == 1
        assert summary.entries_created == 1
        assert referral_store.writes() == []
        assert _profile(referral_store, 12)["referral_code_used"] is None
        assert len(referral_store.tables["referrals"]) == 2

    @pytest.mark.asyncio
    async def test_prefers_users_own_referrer(self, referral_store):
        referral_store.tables["user_profiles"].append(
            make_profile(id=14, user_id="u-d", school_email="d@campus.edu", referred_by="u-ref")
        )
        await backfill_referrals(referral_store)

        created = [r for r in referral_store.tables["referrals"] if r["referred_user_id"] == "u-d"]
        assert created[0]["referrer_id"] == "u-ref"
        assert _profile(referral_store, 14)["referral_code_used"] == "SUMMER2025"

    @pytest.mark.asyncio
    async def test_leaves_users_with_a_different_code(self, referral_store):
        referral_store.tables["user_profiles"].append(
            make_profile(
                id=15,
                user_id="u-e",
                school_email="e@campus.edu",
                referred_by="u-ref",
                referral_code_used="OTHER",
            )
        )
        summary = await backfill_referrals(referral_store)

        assert summary.conflicts == 1
        assert _profile(referral_store, 15)["referral_code_used"] == "OTHER"
        assert not [r for r in referral_store.tables["referrals"] if r["referred_user_id"] == "u-e"]

    @pytest.mark.asyncio
    async def test_skips_entry_without_known_referrer(self, referral_store):
        referral_store.tables["referral_codes"].append(
            make_referral_code(id=4, code="ORPHAN", total_uses=1, referrer_id=None)
        )
        referral_store.tables["user_profiles"].append(
            make_profile(id=16, user_id="u-f", school_email="f@campus.edu", referral_code_used="ORPHAN")
        )
        summary = await backfill_referrals(referral_store)

        assert summary.missing_referrer == 1
        assert not [r for r in referral_store.tables["referrals"] if r["referral_code_id"] == 4]

    @pytest.mark.asyncio
    async def test_code_referrer_id_finds_referred_users(self, referral_store):
        # No profile owns NOCOUNTER, but the code row names its referrer
        referral_store.tables["referral_codes"][1]["referrer_id"] = "u-owner"
        referral_store.tables["user_profiles"].append(
            make_profile(id=17, user_id="u-g", school_email="g@campus.edu", referred_by="u-owner")
        )
        await backfill_referrals(referral_store)

        assert _profile(referral_store, 17)["referral_code_used"] == "NOCOUNTER"

    @pytest.mark.asyncio
    async def test_row_failures_are_counted_and_run_continues(self, referral_store):
        referral_store.fail("referrals")
        summary = await backfill_referrals(referral_store)

        assert summary.failures == 3
        # Profile repair happens before the join-table check
        assert _profile(referral_store, 12)["referral_code_used"] == "SUMMER2025"

    @pytest.mark.asyncio
    async def test_failure_listing_codes_aborts(self, referral_store):
        from app.core.exceptions import ReferralStoreError

        referral_store.fail("referral_codes")
        with pytest.raises(ReferralStoreError):
            await backfill_referrals(referral_store)

    @pytest.mark.asyncio
    async def test_user_redeeming_another_code_mid_run_gets_no_entry(self, referral_store):
        referral_store.tables["user_profiles"].append(
            make_profile(id=18, user_id="u-h", school_email="h@campus.edu", referred_by="u-ref")
        )
        # The guarded update matches no row: the profile gained a code after it was read
        with patch.object(referral_ops, "set_code_used", new=AsyncMock(return_value=False)):
            summary = await backfill_referrals(referral_store)

        # b and h both lose the race
        assert summary.conflicts == 2
        assert summary.profiles_updated == 0
        assert not [r for r in referral_store.tables["referrals"] if r["referred_user_id"] == "u-h"]

"""
Verify referral tracking: compare each code's counter with what is recorded.

For every code with uses (or only the codes given on the command line),
reports the authoritative total_uses against the number of profiles whose
referral_code_used points at the code and the number of rows in the
referrals join table.

Usage:
    python -m app.tasks.verify_referrals
    python -m app.tasks.verify_referrals IITD009 IITD010
"""

import asyncio
import logging
import sys
from dataclasses import dataclass

from supabase import Client

from app.domain.referral_operations import referral_ops
from app.models.referral import ReferralCode
from app.services.supabase import get_supabase_admin_client

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)


@dataclass
class CodeReport:
    """Recorded usage for one referral code."""

    code: str
    total_uses: int | None
    profile_count: int
    entry_count: int

    @property
    def consistent(self) -> bool:
        """Both tracking sources agree with the counter."""
        return self.total_uses == self.profile_count == self.entry_count


async def _report_for(client: Client, code: ReferralCode) -> CodeReport:
    users, entries = await asyncio.gather(
        referral_ops.get_users_using_code(client, code.code),
        referral_ops.get_entries_for_code(client, code.id),
    )
    return CodeReport(
        code=code.code,
        total_uses=code.total_uses,
        profile_count=len(users),
        entry_count=len(entries),
    )


async def verify_referrals(
    client: Client | None = None,
    codes: list[str] | None = None,
) -> list[CodeReport]:
    """Build and log a usage report for each code."""
    client = client or get_supabase_admin_client()

    if codes:
        targets = []
        for code_str in codes:
            code = await referral_ops.get_code(client, code_str)
            if code is None:
                logger.warning(f"Code {code_str!r} not found, skipping")
                continue
            targets.append(code)
    else:
        targets = await referral_ops.get_codes(client, only_used=True)

    reports = []
    for code in targets:
        report = await _report_for(client, code)
        reports.append(report)

        marker = "OK" if report.consistent else "MISMATCH"
        logger.info(f"[{marker}] Code {report.code!r}: {report.total_uses} total uses")
        logger.info(f"  - {report.profile_count} users in profiles")
        logger.info(f"  - {report.entry_count} entries in referrals table")

    mismatched = sum(1 for r in reports if not r.consistent)
    logger.info(f"Verified {len(reports)} codes, {mismatched} with mismatches")
    return reports


def main() -> None:
    """Run the verification."""
    codes = [arg for arg in sys.argv[1:] if not arg.startswith("--")]
    asyncio.run(verify_referrals(codes=codes or None))


if __name__ == "__main__":
    main()

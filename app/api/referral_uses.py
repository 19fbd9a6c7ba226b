"""Referral usage lookup endpoint."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from app.api.deps import ReadClient
from app.core.exceptions import ReferralStoreError, StoreUnavailableError, ValidationError
from app.domain.referral_operations import referral_ops

logger = logging.getLogger(__name__)

router = APIRouter(tags=["referrals"])


class ReferralUsesResponse(BaseModel):
    """Usage count and referred users for one referral code."""

    model_config = ConfigDict(populate_by_name=True)

    code: str
    uses: int
    referred_emails: list[str] = Field(default_factory=list, alias="referredEmails")


def require_code(code: str | None = None) -> str:
    """Validate the code query parameter before any store client is built."""
    code = (code or "").strip()
    if not code:
        raise ValidationError("Missing 'code' query parameter")
    return code


@router.get("/referral-uses", response_model=ReferralUsesResponse)
async def get_referral_uses(
    code: Annotated[str, Depends(require_code)],
    client: ReadClient,
) -> ReferralUsesResponse:
    """
    Public endpoint: how many times a referral code was used, and by whom.

    Unknown codes report zero uses. Store failures return 500 with the
    underlying message.
    """
    try:
        result = await referral_ops.get_referral_uses(client, code)
    except ReferralStoreError as e:
        logger.error(f"Referral lookup failed for code {code!r}: {e.message}")
        raise StoreUnavailableError(e.message) from None

    return ReferralUsesResponse(
        code=result.code,
        uses=result.uses,
        referred_emails=result.referred_emails,
    )

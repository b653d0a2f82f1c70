"""Shared helpers for turning service outcomes into HTTP responses."""

from typing import Optional

from fastapi import HTTPException, status
from libs.auth.models import AuthUser
from services.wallet_service.models import MembershipTier, RejectionReason
from services.wallet_service.schemas import RejectionDetail
from services.wallet_service.services.outcomes import Rejection

REJECTION_STATUS = {
    RejectionReason.INSUFFICIENT_BALANCE: status.HTTP_400_BAD_REQUEST,
    RejectionReason.USAGE_CAP_EXCEEDED: status.HTTP_400_BAD_REQUEST,
    RejectionReason.SCORE_TOO_LOW: status.HTTP_400_BAD_REQUEST,
    RejectionReason.DAILY_CAP_EXCEEDED: status.HTTP_409_CONFLICT,
    RejectionReason.ALREADY_CHECKED_IN: status.HTTP_409_CONFLICT,
    RejectionReason.TASK_ALREADY_COMPLETED: status.HTTP_409_CONFLICT,
    RejectionReason.IDEMPOTENCY_CONFLICT: status.HTTP_409_CONFLICT,
    RejectionReason.COOLDOWN_ACTIVE: status.HTTP_429_TOO_MANY_REQUESTS,
    RejectionReason.DAILY_PLAY_LIMIT: status.HTTP_429_TOO_MANY_REQUESTS,
    RejectionReason.PLAY_IN_PROGRESS: status.HTTP_429_TOO_MANY_REQUESTS,
    RejectionReason.MEMBERSHIP_REQUIRED: status.HTTP_403_FORBIDDEN,
}


def rejection_to_http(rejection: Rejection) -> HTTPException:
    status_code = REJECTION_STATUS.get(rejection.reason, status.HTTP_400_BAD_REQUEST)
    headers = None
    if (
        status_code == status.HTTP_429_TOO_MANY_REQUESTS
        and rejection.retry_after_seconds is not None
    ):
        headers = {"Retry-After": str(rejection.retry_after_seconds)}
    detail = RejectionDetail(
        code=rejection.reason.value.upper(),
        message=rejection.message,
        retry_after_seconds=rejection.retry_after_seconds,
        remaining_allowance=rejection.remaining_allowance,
    )
    return HTTPException(
        status_code=status_code, detail=detail.model_dump(), headers=headers
    )


def member_tier(user: AuthUser) -> Optional[MembershipTier]:
    """Membership tier asserted by the auth token, if any."""
    return MembershipTier.parse(user.membership_tier)

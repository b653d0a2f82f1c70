"""Enums for the Wallet Service models."""

import enum
from typing import Optional


def enum_values(enum_cls):
    """Return persistent DB values for SAEnum mappings."""
    return [member.value for member in enum_cls]


class TransactionType(str, enum.Enum):
    EARN = "earn"
    SPEND = "spend"
    REFUND = "refund"
    FREEZE = "freeze"
    UNFREEZE = "unfreeze"


class MembershipTier(str, enum.Enum):
    SILVER = "silver"
    GOLDEN = "golden"
    DIAMOND = "diamond"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["MembershipTier"]:
        """Accept storefront labels ("Golden Paw") as well as enum values.

        Unknown or empty labels mean "not a member".
        """
        if not value:
            return None
        key = value.strip().lower().replace("_", " ")
        if key.endswith(" paw"):
            key = key[: -len(" paw")]
        try:
            return cls(key.strip())
        except ValueError:
            return None


class GameKind(str, enum.Enum):
    FEED_PET = "feed_pet"
    MATCH_THREE = "match_three"
    LUCKY_WHEEL = "lucky_wheel"
    QUIZ = "quiz"


class GamePlayStatus(str, enum.Enum):
    PLAYING = "playing"
    COMPLETED = "completed"


class GameState(str, enum.Enum):
    IDLE = "idle"
    PLAYING = "playing"
    COOLDOWN = "cooldown"


class RewardOutcome(str, enum.Enum):
    CREDITED = "credited"
    NO_REWARD = "no_reward"
    DAILY_CAP_EXCEEDED = "daily_cap_exceeded"


class TaskType(str, enum.Enum):
    REVIEW_ORDER = "review_order"
    PHOTO_REVIEW = "photo_review"
    SHARE_PRODUCT = "share_product"
    REFER_FRIEND = "refer_friend"


class BenefitKind(str, enum.Enum):
    FREE_DELIVERY = "free_delivery"
    ORDER_DISCOUNT = "order_discount"
    COUPON = "coupon"


class RejectionReason(str, enum.Enum):
    INSUFFICIENT_BALANCE = "insufficient_balance"
    DAILY_CAP_EXCEEDED = "daily_cap_exceeded"
    COOLDOWN_ACTIVE = "cooldown_active"
    DAILY_PLAY_LIMIT = "daily_play_limit"
    PLAY_IN_PROGRESS = "play_in_progress"
    MEMBERSHIP_REQUIRED = "membership_required"
    USAGE_CAP_EXCEEDED = "usage_cap_exceeded"
    ALREADY_CHECKED_IN = "already_checked_in"
    TASK_ALREADY_COMPLETED = "task_already_completed"
    SCORE_TOO_LOW = "score_too_low"
    IDEMPOTENCY_CONFLICT = "idempotency_conflict"

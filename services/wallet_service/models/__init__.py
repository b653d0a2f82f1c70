"""Wallet Service models package.

Re-exports all models and enums so that:
  - ``from services.wallet_service.models import Wallet`` works
  - Alembic env.py sees every table through one import
  - SQLAlchemy's mapper registry sees every model class on import

IMPORTANT: Every model class AND enum must be listed here.
When adding a new model, add both its import and its __all__ entry.
"""

from services.wallet_service.models.engagement import (  # noqa: F401
    DailyCheckIn,
    UserTask,
)
from services.wallet_service.models.enums import (  # noqa: F401
    BenefitKind,
    GameKind,
    GamePlayStatus,
    GameState,
    MembershipTier,
    RejectionReason,
    RewardOutcome,
    TaskType,
    TransactionType,
)
from services.wallet_service.models.game import GamePlay  # noqa: F401
from services.wallet_service.models.redemption import Redemption  # noqa: F401
from services.wallet_service.models.transaction import WalletTransaction  # noqa: F401
from services.wallet_service.models.wallet import Wallet  # noqa: F401

__all__ = [
    # Enums
    "BenefitKind",
    "GameKind",
    "GamePlayStatus",
    "GameState",
    "MembershipTier",
    "RejectionReason",
    "RewardOutcome",
    "TaskType",
    "TransactionType",
    # Ledger
    "Wallet",
    "WalletTransaction",
    # Rewards
    "GamePlay",
    "DailyCheckIn",
    "UserTask",
    # Redemption
    "Redemption",
]

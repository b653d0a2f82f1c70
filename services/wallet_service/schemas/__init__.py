"""Wallet Service schemas package.

Re-exports all schemas so that routers can import from
``services.wallet_service.schemas`` directly.

IMPORTANT: Every schema class must be listed here.
When adding a new schema, add its import and __all__ entry.
"""

from services.wallet_service.schemas.admin import (  # noqa: F401
    AdjustBalanceRequest,
    AdjustBalanceResponse,
    AdminStatsResponse,
    AdminWalletListResponse,
    ReconciliationResponse,
    ResetGamesResponse,
)
from services.wallet_service.schemas.game import (  # noqa: F401
    DailyGameStatusResponse,
    GamePlayResponse,
    GameStatusResponse,
    LeaderboardEntryResponse,
    LeaderboardResponse,
    PlayGameRequest,
    PlayGameResponse,
)
from services.wallet_service.schemas.redemption import (  # noqa: F401
    RedeemForOrderRequest,
    RedeemRequest,
    RedeemResponse,
    RedemptionListResponse,
    RedemptionResponse,
)
from services.wallet_service.schemas.rewards import (  # noqa: F401
    CheckInResponse,
    CheckInStatusResponse,
    CompleteTaskRequest,
    CompleteTaskResponse,
    TaskResponse,
    TaskStatusResponse,
)
from services.wallet_service.schemas.transaction import (  # noqa: F401
    LedgerRequest,
    LedgerResponse,
    PurchaseRewardRequest,
    PurchaseRewardResponse,
    TransactionListResponse,
    TransactionResponse,
)
from services.wallet_service.schemas.wallet import (  # noqa: F401
    BalanceResponse,
    MyWalletResponse,
    RejectionDetail,
    WalletLimits,
    WalletResponse,
)

__all__ = [
    # Wallet
    "BalanceResponse",
    "MyWalletResponse",
    "RejectionDetail",
    "WalletLimits",
    "WalletResponse",
    # Transaction
    "LedgerRequest",
    "LedgerResponse",
    "PurchaseRewardRequest",
    "PurchaseRewardResponse",
    "TransactionListResponse",
    "TransactionResponse",
    # Games
    "DailyGameStatusResponse",
    "GamePlayResponse",
    "GameStatusResponse",
    "LeaderboardEntryResponse",
    "LeaderboardResponse",
    "PlayGameRequest",
    "PlayGameResponse",
    # Check-in / tasks
    "CheckInResponse",
    "CheckInStatusResponse",
    "CompleteTaskRequest",
    "CompleteTaskResponse",
    "TaskResponse",
    "TaskStatusResponse",
    # Redemption
    "RedeemForOrderRequest",
    "RedeemRequest",
    "RedeemResponse",
    "RedemptionListResponse",
    "RedemptionResponse",
    # Admin
    "AdjustBalanceRequest",
    "AdjustBalanceResponse",
    "AdminStatsResponse",
    "AdminWalletListResponse",
    "ReconciliationResponse",
    "ResetGamesResponse",
]

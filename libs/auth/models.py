from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class AuthUser(BaseModel):
    """
    Represents an authenticated user as asserted by the auth subsystem.
    """

    user_id: str = Field(..., alias="sub")
    email: Optional[EmailStr] = None
    role: str = "authenticated"
    # Supplied by the membership subsystem; read-only here
    membership_tier: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)

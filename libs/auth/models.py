from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class AuthUser(BaseModel):
    """
    Represents an authenticated caller decoded from a bearer JWT.
    """

    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="sub")
    email: Optional[EmailStr] = None
    role: str = "authenticated"
    # Sellers carry their seller profile id; falls back to the user id.
    seller_id: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role in ("admin", "service_role")

    @property
    def effective_seller_id(self) -> str:
        return self.seller_id or self.user_id

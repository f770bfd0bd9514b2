from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class AuthUser(BaseModel):
    """
    Represents the authenticated caller, decoded from a bearer token.
    """

    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="sub")
    email: Optional[EmailStr] = None
    role: str = "user"
    # Set for vendor accounts; identifies the vendor they act for
    vendor_id: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

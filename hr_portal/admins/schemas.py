"""Admin Pydantic v2 schemas."""


import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr

from hr_portal.common.constants import DEFAULT_ADMIN_TITLE


class AdminCreate(BaseModel):
    """Body of ``POST /api/admins``; missing fields are reported together."""

    name: Optional[str] = None
    email: Optional[EmailStr] = None
    password: Optional[str] = None
    role: str = DEFAULT_ADMIN_TITLE


class AdminResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    account_id: uuid.UUID
    name: str
    email: str
    role: str
    created_at: datetime

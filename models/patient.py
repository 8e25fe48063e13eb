"""Patient models."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class Patient(BaseModel):
    """Patient model."""

    id: str = Field(..., description="Patient ID (Supabase UUID)")
    name: str
    email: Optional[EmailStr] = None
    telegram_id: Optional[int] = Field(None, description="Telegram chat for notifications")
    created_at: Optional[datetime] = None

    class Config:
        json_schema_extra = {
            "example": {
                "id": "uuid-here",
                "name": "Juan Pérez",
                "email": "juan@example.com",
                "telegram_id": 123456789,
            }
        }

"""
app/schemas/backend.py

Purpose: Backend admin API payload models

- Users returned by GET /users
- Orders returned by GET /orders/{id}
- Application-level envelope with error_code / error_message
"""

from pydantic import BaseModel, ConfigDict
from typing import Any, Optional


class BackendModel(BaseModel):
    # The API mixes numbers and strings for the same fields
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)


class BackendEnvelope(BackendModel):
    error_code: int = 0
    error_message: Optional[str] = None
    data: Any = None


class BackendUser(BackendModel):
    username: str
    email: Optional[str] = None

    def matches(self, identifier: str) -> bool:
        """Case-sensitive match on username or email."""
        return self.username == identifier or (self.email is not None and self.email == identifier)


class BackendOrder(BackendModel):
    id: str
    service_name: str
    status: str
    quantity: str
    remains: str
    created: str
    link: Optional[str] = None

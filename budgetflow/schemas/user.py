from decimal import Decimal

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    email: str
    password: str


class RegisterRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=256)
    password: str = Field(..., min_length=6)
    first_name: str = ""
    last_name: str = ""
    department: str = ""
    position: str = ""
    hourly_rate: Decimal = Decimal("0")

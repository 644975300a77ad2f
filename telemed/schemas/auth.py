"""
Request and response schemas for signup and login.

Signup is a tagged union keyed by ``role``: each variant declares exactly the
profile fields that role requires, so a payload is either complete for its
role or rejected before the database is touched.
"""
from datetime import datetime
from typing import Annotated, Literal, Optional, Union

from pydantic import AnyHttpUrl, BaseModel, ConfigDict, EmailStr, Field, RootModel
from pydantic.alias_generators import to_camel

from ..core.security import UserRole

MIN_PASSWORD_LENGTH = 6

class CamelModel(BaseModel):
    """Base schema speaking camelCase JSON."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

class Credentials(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH)

class PatientSignup(Credentials):
    role: Literal["PATIENT"]
    full_name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)

class DoctorSignup(Credentials):
    role: Literal["DOCTOR"]
    full_name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    degree: str = Field(..., min_length=1)
    experience: int = Field(..., ge=0)
    description: str = Field(..., min_length=1)
    profile_image: Optional[AnyHttpUrl] = None

class ProviderSignup(Credentials):
    role: Literal["PROVIDER"]
    name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)

SignupVariant = Annotated[
    Union[PatientSignup, DoctorSignup, ProviderSignup],
    Field(discriminator="role"),
]

class SignupRequest(RootModel[SignupVariant]):
    """Signup body; the variant is chosen by its `role` field."""

class UserLogin(Credentials):
    pass

class UserResponse(CamelModel):
    """A user as returned to clients. Never carries the password hash."""
    id: int
    email: str
    role: UserRole
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class SignupResponse(CamelModel):
    user: UserResponse

class LoginResponse(CamelModel):
    token: str
    user: UserResponse

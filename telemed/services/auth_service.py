from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import Union
import logging

from ..models.user import User
from ..models.patient import Patient
from ..models.doctor import Doctor
from ..models.provider import Provider
from ..core.exceptions import ConflictError, InvalidCredentialsError
from ..core.security import (
    UserRole, create_access_token, dummy_password_hash,
    get_password_hash, verify_password
)
from ..schemas.auth import (
    DoctorSignup, LoginResponse, PatientSignup, ProviderSignup,
    UserLogin, UserResponse
)

logger = logging.getLogger(__name__)

SignupPayload = Union[PatientSignup, DoctorSignup, ProviderSignup]

class AuthService:
    def __init__(self, db: Session):
        self.db = db

    def register_user(self, payload: SignupPayload) -> User:
        """Create a user and its role profile in one transaction."""
        if self._email_taken(payload.email):
            raise ConflictError("Email already in use")

        new_user = User(
            email=payload.email,
            password_hash=get_password_hash(payload.password),
            role=UserRole(payload.role),
        )

        try:
            self.db.add(new_user)
            self.db.flush()  # assigns new_user.id for the profile row
            self.db.add(self._build_profile(new_user, payload))
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            if self._email_taken(payload.email):
                logger.info(f"Signup raced on existing email {payload.email}")
                raise ConflictError("Email already in use")
            raise
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(new_user)
        logger.info(f"Registered {new_user.role.value} user {new_user.id}")
        return new_user

    def authenticate_user(self, login_data: UserLogin) -> LoginResponse:
        """Check credentials and issue a token.

        Unknown email and wrong password raise the same error.
        """
        user = self.db.query(User).filter(
            User.email == login_data.email
        ).first()

        if not user:
            verify_password(login_data.password, dummy_password_hash())
            logger.info(f"Failed login for {login_data.email}: unknown email")
            raise InvalidCredentialsError()

        if not verify_password(login_data.password, user.password_hash):
            logger.info(f"Failed login for {login_data.email}: wrong password")
            raise InvalidCredentialsError()

        token = create_access_token(user.id, user.role)

        return LoginResponse(
            token=token,
            user=UserResponse.model_validate(user)
        )

    def _email_taken(self, email: str) -> bool:
        return self.db.query(User.id).filter(User.email == email).first() is not None

    def _build_profile(self, user: User, payload: SignupPayload):
        """Profile row for the signup variant."""
        if isinstance(payload, PatientSignup):
            return Patient(
                user_id=user.id,
                full_name=payload.full_name,
                phone=payload.phone,
            )
        if isinstance(payload, DoctorSignup):
            return Doctor(
                user_id=user.id,
                full_name=payload.full_name,
                phone=payload.phone,
                degree=payload.degree,
                experience=payload.experience,
                description=payload.description,
                profile_image=str(payload.profile_image) if payload.profile_image else None,
            )
        if isinstance(payload, ProviderSignup):
            return Provider(
                user_id=user.id,
                name=payload.name,
                phone=payload.phone,
                address=payload.address,
                description=payload.description,
            )
        raise TypeError(f"Unsupported signup payload: {type(payload).__name__}")

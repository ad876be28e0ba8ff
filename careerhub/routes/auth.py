"""Authentication routes."""
import uuid
from datetime import datetime, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.orm import Session

from careerhub.core.config import settings
from careerhub.core.security import (
    create_access_token,
    get_current_user,
    get_password_hash,
    require_roles,
    verify_password,
)
from careerhub.db.sessions import get_db
from careerhub.models import SchoolClass, User
from careerhub.models.user import ROLE_ADMIN, ROLE_SCHOOL, ROLE_STUDENT
from careerhub.services.schools import get_school
from careerhub.utils.responses import ORMModel, api_response


router = APIRouter(prefix="/api/v1/auth", tags=["Authentication"])


# Request/Response schemas
class RegisterRequest(BaseModel):
    full_name: str = Field(min_length=1, max_length=150)
    email: EmailStr
    password: str = Field(min_length=6)
    school_id: Optional[uuid.UUID] = None
    class_id: Optional[uuid.UUID] = None


class CreateUserRequest(RegisterRequest):
    role: str = Field(pattern=f"^({ROLE_ADMIN}|{ROLE_SCHOOL}|{ROLE_STUDENT})$")


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class UserResponse(ORMModel):
    id: uuid.UUID
    full_name: str
    email: str
    role: str
    school_id: Optional[uuid.UUID]
    class_id: Optional[uuid.UUID]
    created_at: datetime


def _token_payload(user: User) -> dict:
    access_token = create_access_token(
        data={"sub": str(user.id), "role": user.role},
        expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    return {
        "access_token": access_token,
        "token_type": "bearer",
        "user": UserResponse.model_validate(user),
    }


def _create_user(db: Session, request: RegisterRequest, role: str) -> User:
    existing_user = db.query(User).filter(User.email == request.email).first()
    if existing_user:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already registered"
        )

    if request.school_id:
        get_school(db, request.school_id)
    if request.class_id:
        school_class = db.query(SchoolClass).filter(SchoolClass.id == request.class_id).first()
        if not school_class or (request.school_id and school_class.school_id != request.school_id):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid class_id")

    user = User(
        full_name=request.full_name,
        email=request.email,
        password_hash=get_password_hash(request.password),
        role=role,
        school_id=request.school_id,
        class_id=request.class_id,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(request: RegisterRequest, db: Session = Depends(get_db)):
    """
    Register a new student account.

    - Creates user account with hashed password
    - Returns JWT access token
    """
    user = _create_user(db, request, ROLE_STUDENT)
    return api_response(_token_payload(user), "Registered successfully")


@router.post("/users", status_code=status.HTTP_201_CREATED)
def create_user(
    request: CreateUserRequest,
    db: Session = Depends(get_db),
    _: User = Depends(require_roles(ROLE_ADMIN)),
):
    """Create an account with any role. Admin only."""
    if request.role in (ROLE_SCHOOL, ROLE_STUDENT) and not request.school_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="school_id is required for this role")
    user = _create_user(db, request, request.role)
    return api_response(UserResponse.model_validate(user), "User created successfully")


@router.post("/login")
def login(request: LoginRequest, db: Session = Depends(get_db)):
    """Login with email and password."""
    user = db.query(User).filter(User.email == request.email).first()
    if not user or not verify_password(request.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password"
        )
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is disabled")

    return api_response(_token_payload(user), "Login successfully")


@router.get("/me")
def get_me(current_user: User = Depends(get_current_user)):
    """
    Get current authenticated user information.

    Protected endpoint - requires valid JWT token.
    """
    return api_response(UserResponse.model_validate(current_user))

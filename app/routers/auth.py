import uuid
from datetime import datetime, timezone

import bcrypt
from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.models.user import User
from app.schemas.auth import MAX_PASSWORD_BYTES, LoginRequest, SignupRequest, UserResponse
from app.utils.exceptions import AppException
from app.utils.response import success_response

router = APIRouter(prefix="/auth", tags=["auth"])


def _normalize_email(email: str) -> str:
    return email.strip().lower()


@router.post("/signup", status_code=201)
async def signup(request: SignupRequest, db: AsyncSession = Depends(get_db)):
    email = _normalize_email(request.email)
    result = await db.execute(select(User).where(User.email == email))
    if result.scalars().first() is not None:
        raise AppException("User already registered", status_code=400)

    user = User(
        id=str(uuid.uuid4()),
        email=email,
        password_hash=bcrypt.hashpw(request.password.encode(), bcrypt.gensalt()).decode(),
        created_at=datetime.now(timezone.utc).isoformat(),
    )
    db.add(user)
    await db.commit()

    return success_response(data=UserResponse(user_id=user.id, email=user.email).model_dump())


@router.post("/login")
async def login(request: LoginRequest, db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(User).where(User.email == _normalize_email(request.email)))
    user = result.scalars().first()

    password = request.password.encode()
    if user is None or len(password) > MAX_PASSWORD_BYTES:
        raise AppException("Invalid login credentials", status_code=400)

    if not bcrypt.checkpw(password, user.password_hash.encode()):
        raise AppException("Invalid login credentials", status_code=400)

    return success_response(
        data=UserResponse(user_id=user.id, email=user.email).model_dump()
    )

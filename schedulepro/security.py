from typing import Annotated, Optional
from datetime import datetime, timedelta, timezone
import uuid

import jwt
from jwt.exceptions import InvalidTokenError
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from pwdlib import PasswordHash
from pydantic import BaseModel
from sqlmodel import Session, select

from .config import (
    SECRET_KEY,
    ALGORITHM,
    ACCESS_TOKEN_EXPIRE_MINUTES,
    REFRESH_TOKEN_EXPIRE_DAYS,
)
from .database import get_session
from .models import Person, RevokedToken, SessionTokens, User


class Principal(BaseModel):
    """The caller behind a bearer token, with the company it acts for."""

    user_id: uuid.UUID
    email: str
    token_id: Optional[str] = None
    token_expires_at: Optional[datetime] = None
    person_id: Optional[uuid.UUID] = None
    company_id: Optional[uuid.UUID] = None


password_hash = PasswordHash.recommended()

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return password_hash.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return password_hash.hash(password)


def create_token(subject: str, token_type: str, expires_delta: timedelta) -> str:
    if not SECRET_KEY or SECRET_KEY == "":
        raise ValueError("SECRET_KEY is missing")
    now = datetime.now(timezone.utc)
    payload = {
        "sub": subject,
        "type": token_type,
        "jti": str(uuid.uuid4()),
        "iat": now,
        "exp": now + expires_delta,
    }
    return jwt.encode(payload, SECRET_KEY, algorithm=ALGORITHM)


def create_session_tokens(user: User) -> SessionTokens:
    return SessionTokens(
        access_token=create_token(
            str(user.id), "access", timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
        ),
        refresh_token=create_token(
            str(user.id), "refresh", timedelta(days=REFRESH_TOKEN_EXPIRE_DAYS)
        ),
    )


def authenticate_user(session: Session, email: str, password: str):
    user = session.exec(select(User).where(User.email == email)).first()
    if not user:
        return False
    if not verify_password(password, user.hashed_password):
        return False
    return user


def get_linked_person(session: Session, user_id: uuid.UUID) -> Optional[Person]:
    return session.exec(
        select(Person)
        .where(Person.user_id == user_id)
        .where(Person.is_deleted == False)  # noqa: E712
    ).first()


def get_current_user(
    token: Annotated[Optional[str], Depends(oauth2_scheme)],
    session: Session = Depends(get_session),
) -> Principal:
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No token provided. Please login.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or expired token. Please login again.",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        user_id = uuid.UUID(payload["sub"])
        token_id = payload["jti"]
    except (InvalidTokenError, KeyError, ValueError, TypeError):
        raise credentials_exception
    if payload.get("type") != "access":
        raise credentials_exception
    if session.get(RevokedToken, token_id):
        raise credentials_exception

    user = session.get(User, user_id)
    if user is None:
        raise credentials_exception

    principal = Principal(
        user_id=user.id,
        email=user.email,
        token_id=token_id,
        token_expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
    )
    person = get_linked_person(session, user.id)
    if person:
        principal.person_id = person.id
        principal.company_id = person.company_id
    return principal


def get_company_id(
    current_user: Annotated[Principal, Depends(get_current_user)],
) -> uuid.UUID:
    """Company scope for tenant routes; callers without one cannot use them."""
    if current_user.company_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Company ID not found. Please login again.",
        )
    return current_user.company_id


def revoke_token(session: Session, principal: Principal):
    session.add(
        RevokedToken(
            jti=principal.token_id,
            user_id=principal.user_id,
            expires_at=principal.token_expires_at,
        )
    )
    session.commit()

from typing import Annotated

import structlog
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from slugify import slugify
from sqlmodel import Session, select

from .analytics import track
from .database import get_session
from .models import (
    AuthPayload,
    AuthUser,
    Company,
    CompanySummary,
    CurrentUserRead,
    LoginRequest,
    Person,
    Profile,
    RegisterRequest,
    User,
)
from .responses import ApiResponse, success
from .security import (
    Principal,
    authenticate_user,
    create_session_tokens,
    get_current_user,
    get_linked_person,
    get_password_hash,
    revoke_token,
)

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])

MIN_PASSWORD_LENGTH = 8


@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse[AuthPayload],
    summary="Register company",
    response_description="Session tokens and profile of the new admin",
)
def register(
    body: RegisterRequest,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
):
    """
    Register a new company together with its first (admin) user.
    The user, the company and the user's person record are created in one transaction.
    """
    if not body.company_name or not body.name or not body.email or not body.password:
        raise HTTPException(
            status_code=400,
            detail="Missing required fields: company_name, name, email, password",
        )
    if len(body.password) < MIN_PASSWORD_LENGTH:
        raise HTTPException(
            status_code=400,
            detail=f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
        )
    existing_user = session.exec(select(User).where(User.email == body.email)).first()
    if existing_user:
        raise HTTPException(status_code=400, detail="User already registered")

    user = User(email=body.email, hashed_password=get_password_hash(body.password))
    company = Company(name=body.company_name, slug=slugify(body.company_name), settings={})
    person = Person(
        company_id=company.id,
        user_id=user.id,
        name=body.name,
        email=body.email,
    )
    session.add(user)
    session.add(company)
    session.flush()
    session.add(person)
    session.commit()
    for record in (user, company, person):
        session.refresh(record)

    logger.info("company_registered", company_id=str(company.id), user_id=str(user.id))
    background_tasks.add_task(track, "company.registered", company.id, {"user_id": str(user.id)})

    payload = AuthPayload(
        user=AuthUser(id=user.id, email=user.email),
        session=create_session_tokens(user),
        profile=Profile(
            id=person.id,
            name=person.name,
            email=person.email,
            company_id=company.id,
            company_name=company.name,
        ),
    )
    return success(payload, "Registration successful")


@router.post("/login", response_model=ApiResponse[AuthPayload], summary="Log in")
def login(body: LoginRequest, session: Session = Depends(get_session)):
    """Exchange email and password for session tokens."""
    if not body.email or not body.password:
        raise HTTPException(status_code=400, detail="Email and password are required")

    user = authenticate_user(session, body.email, body.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    person = get_linked_person(session, user.id)
    if not person:
        logger.warning("profile_missing", user_id=str(user.id))
        raise HTTPException(status_code=404, detail="User profile not found")
    company = session.get(Company, person.company_id)

    payload = AuthPayload(
        user=AuthUser(id=user.id, email=user.email),
        session=create_session_tokens(user),
        profile=Profile(
            id=person.id,
            name=person.name,
            email=person.email,
            company_id=person.company_id,
            company_name=company.name,
        ),
    )
    return success(payload, "Login successful")


@router.post("/logout", response_model=ApiResponse[None], summary="Log out")
def logout(
    current_user: Annotated[Principal, Depends(get_current_user)],
    session: Session = Depends(get_session),
):
    """Revoke the bearer token used for this request."""
    revoke_token(session, current_user)
    return success(message="Logout successful")


@router.get("/me", response_model=ApiResponse[CurrentUserRead], summary="Get current user")
def read_current_user(
    current_user: Annotated[Principal, Depends(get_current_user)],
    session: Session = Depends(get_session),
):
    """Profile of the caller and the company it belongs to."""
    person = get_linked_person(session, current_user.user_id)
    if not person:
        raise HTTPException(status_code=404, detail="User profile not found")
    company = session.get(Company, person.company_id)

    return success(
        CurrentUserRead(
            id=person.id,
            name=person.name,
            email=person.email,
            phone=person.phone,
            company=CompanySummary(id=company.id, name=company.name, slug=company.slug),
        )
    )

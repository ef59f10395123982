"""Registration, confirmation, login and authorization endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from starlette.responses import JSONResponse

from vouch.api.deps import get_account_service, require_identity, require_publisher
from vouch.api.schemas import LoginPayload, MessageResponse, TokenResponse
from vouch.auth.service import AccountService, RegistrationData
from vouch.auth.types import Identity, MessagePublisher

router = APIRouter(prefix="/auth", tags=["auth"])

Accounts = Annotated[AccountService, Depends(get_account_service)]


@router.post("/register", status_code=201)
async def register(
    payload: RegistrationData,
    accounts: Accounts,
    _publisher: Annotated[MessagePublisher, Depends(require_publisher)],
) -> MessageResponse:
    """POST /auth/register -- open an account and send a verification link."""
    return MessageResponse(message=await accounts.register(payload))


@router.get("/confirm")
async def confirm(
    token: Annotated[str, Query()],
    accounts: Accounts,
) -> MessageResponse:
    """GET /auth/confirm?token=... -- verify an email address."""
    message = await accounts.confirmation_tokens().confirm(token)
    return MessageResponse(message=message)


@router.post("/login")
async def login(payload: LoginPayload, accounts: Accounts) -> TokenResponse:
    """POST /auth/login -- exchange credentials for a bearer token."""
    return TokenResponse(access_token=await accounts.login(payload.email, payload.password))


@router.get("/authorize")
async def authorize(
    identity: Annotated[Identity, Depends(require_identity)],
    accounts: Accounts,
) -> JSONResponse:
    """GET /auth/authorize -- user id and role as headers for the gateway."""
    headers = await accounts.authorize(identity)
    return JSONResponse({"headers": headers}, headers=headers)

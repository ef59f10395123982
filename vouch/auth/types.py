"""Request-scoped identity and collaborator interfaces for authentication."""

from collections.abc import Awaitable, Callable
from datetime import date
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, Field
from starlette.requests import Request
from starlette.responses import Response

from vouch.core.errors import AuthError
from vouch.db.models_user import UserEntity, UserRole


class Identity(BaseModel):
    """An authenticated principal. Carries no credential material."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    email: str
    role: UserRole
    authorities: list[str] = Field(default_factory=list)

    @classmethod
    def from_user(cls, user: UserEntity) -> "Identity":
        return cls(
            user_id=user.id,
            email=user.email,
            role=user.role,
            authorities=user.authorities,
        )


class AuthContext:
    """Per-request authentication state, passed explicitly down the chain."""

    def __init__(self) -> None:
        self.identity: Identity | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.identity is not None


class UserView(BaseModel):
    """Public account details, without password or flags."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    first_name: str | None = None
    last_name: str | None = None
    date_of_birth: date | None = None
    email: str


class EmailVerificationDetails(BaseModel):
    """Message payload asking the notification service to send a link."""

    email: str
    first_name: str | None = None
    link: str


class UserLookup(Protocol):
    """Finds accounts by email for the authentication filter."""

    async def find_by_email(self, email: str) -> UserEntity | None: ...


class ErrorReporter(Protocol):
    """Turns an authentication failure into the response sent to the client."""

    def report(self, request: Request, error: AuthError) -> Response: ...


class MessagePublisher(Protocol):
    """Fire-and-forget publish onto a message broker exchange."""

    async def publish(self, exchange: str, routing_key: str, payload: dict[str, Any]) -> None: ...


UserRequestHandler = Callable[[str], Awaitable[dict[str, Any] | None]]


class MessageConsumer(Protocol):
    """Delivers messages from a broker queue to a handler and sends back its reply."""

    def subscribe(self, queue: str, handler: UserRequestHandler) -> None: ...


AccountEnabler = Callable[[str], Awaitable[None]]

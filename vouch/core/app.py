"""FastAPI application factory for the vouch auth service."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from vouch.api.errors import JSONErrorReporter, register_error_handlers
from vouch.api.router_auth import router as auth_router
from vouch.auth.filter import (
    AuthenticationFilter,
    AuthenticationMiddleware,
    SessionUserLookup,
)
from vouch.auth.types import MessageConsumer, MessagePublisher
from vouch.auth.user_requests import UserRequestListener
from vouch.core.logging import configure_logging
from vouch.core.settings import AuthSettings
from vouch.crypto.jwt_manager import JWTManager
from vouch.crypto.key_manager import KeyLifecycleManager
from vouch.crypto.kms import KmsClient, build_kms_client
from vouch.db.engine import build_session_factory


def create_app(
    *,
    settings: AuthSettings | None = None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    kms: KmsClient | None = None,
    publisher: MessagePublisher | None = None,
    consumer: MessageConsumer | None = None,
) -> FastAPI:
    """Build and configure the FastAPI application.

    Collaborators default to the ones described by the environment; tests
    pass their own. A broker ``consumer``, when given, is subscribed to the
    user lookup queue.
    """
    settings = settings or AuthSettings()
    configure_logging(settings.log_level)
    session_factory = session_factory or build_session_factory()
    kms = kms or build_kms_client(settings)

    key_manager = KeyLifecycleManager(
        session_factory,
        kms,
        key_id=settings.signing_key_id,
        algorithm=settings.signing_algorithm,
    )
    jwt_manager = JWTManager(
        key_manager,
        kms,
        algorithm=settings.signing_algorithm,
        ttl_ms=settings.token_ttl_ms,
    )
    auth_filter = AuthenticationFilter(
        jwt_manager,
        SessionUserLookup(session_factory),
        JSONErrorReporter(),
    )

    app = FastAPI(
        title="vouch auth service",
        version="0.1.0",
    )
    app.state.settings = settings
    app.state.session_factory = session_factory
    app.state.jwt_manager = jwt_manager
    app.state.publisher = publisher

    if consumer is not None:
        consumer.subscribe(
            settings.user_request_queue, UserRequestListener(session_factory)
        )

    app.add_middleware(AuthenticationMiddleware, auth_filter=auth_filter)
    origins = settings.get_cors_origin_list()
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["GET", "POST"],
            allow_headers=["Authorization", "Content-Type"],
        )

    register_error_handlers(app)
    app.include_router(auth_router)

    return app

"""Shared API dependencies, including the authentication gate for protected routes."""

import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from watson_auth.core.settings import Settings, get_settings
from watson_auth.db.session import get_db
from watson_auth.services.auth import AuthenticatedIdentity, AuthService
from watson_auth.services.chain import ChainQuery, get_chain_client
from watson_auth.services.errors import AuthError, InfrastructureError
from watson_auth.services.nonce_store import NonceStore
from watson_auth.services.sessions import SessionManager
from watson_auth.services.signature import SignatureVerifier

logger = logging.getLogger(__name__)

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]
SettingsDep = Annotated[Settings, Depends(get_settings)]


def get_chain() -> ChainQuery:
    return get_chain_client()


ChainDep = Annotated[ChainQuery, Depends(get_chain)]


def get_session_manager(db: SessionDep) -> SessionManager:
    return SessionManager(db)


SessionManagerDep = Annotated[SessionManager, Depends(get_session_manager)]


def get_auth_service(
    db: SessionDep,
    settings: SettingsDep,
    chain: ChainDep,
    sessions: SessionManagerDep,
) -> AuthService:
    return AuthService(
        settings=settings,
        nonces=NonceStore(db),
        sessions=sessions,
        verifier=SignatureVerifier(chain),
    )


AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]


def read_session_id(request: Request, settings: SettingsDep) -> str | None:
    """Return the session credential carried by the request cookie, if any."""
    return request.cookies.get(settings.cookie_name) or None


SessionIdDep = Annotated[str | None, Depends(read_session_id)]


def to_http_exception(err: AuthError) -> HTTPException:
    """Map an engine error onto an HTTP error without leaking internals."""
    if isinstance(err, InfrastructureError):
        logger.error("Authentication infrastructure failure: %s", err, exc_info=err)
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=InfrastructureError.default_detail,
        )
    return HTTPException(status_code=err.status_code, detail=err.detail)


def get_current_identity(session_id: SessionIdDep, auth: AuthServiceDep) -> AuthenticatedIdentity:
    """Resolve the request's session credential to an authenticated identity.

    Raises:
        HTTPException: 401 if the credential is missing, unknown or expired.
    """
    try:
        return auth.who_am_i(session_id)
    except AuthError as err:
        raise to_http_exception(err) from err


# Protected handlers declare this parameter to receive the verified address
CurrentIdentityDep = Annotated[AuthenticatedIdentity, Depends(get_current_identity)]

__all__ = [
    "AuthServiceDep",
    "CurrentIdentityDep",
    "SessionDep",
    "SessionIdDep",
    "SettingsDep",
    "get_auth_service",
    "get_chain",
    "get_current_identity",
    "read_session_id",
    "to_http_exception",
]

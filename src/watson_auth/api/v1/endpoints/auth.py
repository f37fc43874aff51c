# src/watson_auth/api/v1/endpoints/auth.py
"""Authentication endpoints for the Watson API."""

from __future__ import annotations

from fastapi import APIRouter, Response, status

from watson_auth.api.v1.dependencies import (
    AuthServiceDep,
    CurrentIdentityDep,
    SessionIdDep,
    SettingsDep,
    to_http_exception,
)
from watson_auth.core.settings import Settings
from watson_auth.schemas.auth import MeResponse, NonceRequest, NonceResponse, VerifyRequest
from watson_auth.services.errors import AuthError

router = APIRouter(prefix="/auth", tags=["authentication"])


def _set_session_cookie(
    response: Response, settings: Settings, session_id: str, max_age: int
) -> None:
    response.set_cookie(
        key=settings.cookie_name,
        value=session_id,
        max_age=max_age,
        path="/",
        secure=settings.cookie_secure,
        httponly=True,
        samesite="strict",
    )


@router.post(
    "/nonce",
    summary="Issue a sign-in challenge",
    response_model=NonceResponse,
)
def request_challenge(payload: NonceRequest, auth: AuthServiceDep) -> NonceResponse:
    """Issue a one-time nonce and the challenge text embedding it."""
    try:
        challenge = auth.request_challenge(payload.address, payload.chain_id, payload.origin)
    except AuthError as err:
        raise to_http_exception(err) from err

    return NonceResponse(
        nonce=challenge.nonce,
        message=challenge.message,
        expires_at=challenge.expires_at,
    )


@router.post(
    "/verify",
    summary="Exchange a signed challenge for a session",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def submit_proof(
    payload: VerifyRequest,
    auth: AuthServiceDep,
    settings: SettingsDep,
) -> Response:
    """Verify the signature and set the session cookie."""
    try:
        session = await auth.submit_proof(payload.message, payload.signature)
    except AuthError as err:
        raise to_http_exception(err) from err

    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    _set_session_cookie(response, settings, session.id, settings.session_ttl_seconds)
    return response


@router.get(
    "/me",
    summary="Return the address bound to the current session",
    response_model=MeResponse,
)
def who_am_i(identity: CurrentIdentityDep) -> MeResponse:
    return MeResponse(address=identity.address)


@router.post(
    "/logout",
    summary="Revoke the current session",
    status_code=status.HTTP_204_NO_CONTENT,
)
def logout(session_id: SessionIdDep, auth: AuthServiceDep, settings: SettingsDep) -> Response:
    """Revoke the session, if any, and clear the cookie. Always succeeds."""
    try:
        auth.logout(session_id)
    except AuthError as err:
        raise to_http_exception(err) from err

    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    response.delete_cookie(
        key=settings.cookie_name,
        path="/",
        secure=settings.cookie_secure,
        httponly=True,
        samesite="strict",
    )
    return response

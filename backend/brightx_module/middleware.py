import logging

from fastapi import Depends, FastAPI, Header, HTTPException, Request, status
from fastapi.responses import JSONResponse

from .errors import (
    AuthError,
    InvalidCredentialError,
    InvalidOperationError,
    NoPendingConfirmationError,
    NotFoundError,
    StorageWriteError,
)
from .security import AdminSession
from .store import StateStore


logger = logging.getLogger(__name__)

ERROR_STATUS = {
    InvalidCredentialError: status.HTTP_401_UNAUTHORIZED,
    AuthError: status.HTTP_401_UNAUTHORIZED,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    InvalidOperationError: status.HTTP_409_CONFLICT,
    NoPendingConfirmationError: status.HTTP_409_CONFLICT,
    StorageWriteError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def install_error_handlers(app: FastAPI) -> None:
    for exc_type, status_code in ERROR_STATUS.items():

        def handler(request: Request, exc: Exception, status_code: int = status_code) -> JSONResponse:
            return JSONResponse(status_code=status_code, content={"detail": str(exc)})

        app.add_exception_handler(exc_type, handler)


def get_store(request: Request) -> StateStore:
    return request.app.state.brightx_store


def get_admin_session(request: Request) -> AdminSession:
    return request.app.state.brightx_session


def bearer_token(authorization: str | None) -> str:
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Admin bearer token required")
    return token.strip()


def require_admin(
    authorization: str | None = Header(default=None, alias="Authorization"),
    session: AdminSession = Depends(get_admin_session),
) -> str:
    try:
        claims = session.authorize(bearer_token(authorization))
    except AuthError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc
    return claims["sub"]

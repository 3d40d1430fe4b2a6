# casegate/domains/auth/routes.py
from fastapi import APIRouter, Depends

from casegate.domains.auth.dependencies import (
    get_current_session,
    get_session_service,
)
from casegate.domains.auth.models import (
    LoginRequest,
    LoginResponse,
    LogoutResponse,
    SessionState,
)
from casegate.domains.auth.service import Session, SessionService

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post(
    "/login",
    response_model=LoginResponse,
    operation_id="login",
)
async def login(
    request: LoginRequest,
    service: SessionService = Depends(get_session_service),
) -> LoginResponse:
    """Log in upstream and open a gateway session with loaded permissions."""
    session = await service.login(request.email, request.password)
    return LoginResponse(token=service.issue_token(session), session=session.state())


@router.post(
    "/logout",
    response_model=LogoutResponse,
    operation_id="logout",
)
async def logout(
    session: Session = Depends(get_current_session),
    service: SessionService = Depends(get_session_service),
) -> LogoutResponse:
    await service.logout(session)
    return LogoutResponse(success=True)


@router.get(
    "/session",
    response_model=SessionState,
    operation_id="getSessionState",
)
async def get_session_state(
    session: Session = Depends(get_current_session),
) -> SessionState:
    return session.state()


@router.post(
    "/refresh-permissions",
    response_model=SessionState,
    operation_id="refreshPermissions",
)
async def refresh_permissions(
    session: Session = Depends(get_current_session),
) -> SessionState:
    """Invalidate the session's permission cache and reload it from upstream."""
    await session.store.refresh_permissions()
    return session.state()

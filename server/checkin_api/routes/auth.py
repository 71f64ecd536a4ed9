"""Optional cloud sync authentication API routes."""
from fastapi import APIRouter, Depends

from ..models.auth import AuthCallbackRequest, AuthMessage, AuthStatus, SignInRequest
from ..services import CheckinServices, get_services

router = APIRouter(prefix="/api/auth", tags=["Auth"])


def _status(services: CheckinServices) -> dict:
    identity = services.auth.current_identity
    return {
        "configured": services.auth.is_enabled,
        "signed_in": identity is not None,
        "identity": identity.to_dict() if identity else None,
    }


@router.get("/status", response_model=AuthStatus)
async def get_auth_status(services: CheckinServices = Depends(get_services)):
    """Get whether cloud sync is configured and who is signed in."""
    return _status(services)


@router.post("/sign-in", response_model=AuthMessage)
async def request_sign_in(
    request: SignInRequest,
    services: CheckinServices = Depends(get_services),
):
    """Email a magic sign-in link. Failures come back as a message, not an error."""
    message = await services.auth.request_sign_in_link(
        request.email, redirect_to=services.settings.auth_redirect_url
    )
    return {"message": message, "status": _status(services)}


@router.post("/callback", response_model=AuthMessage)
async def complete_sign_in(
    request: AuthCallbackRequest,
    services: CheckinServices = Depends(get_services),
):
    """Finish sign-in with the access token from the magic link redirect."""
    identity = await services.auth.complete_sign_in(request.access_token)
    message = "Signed in" if identity else "Sign-in link is invalid or expired"
    return {"message": message, "status": _status(services)}


@router.post("/sign-out", response_model=AuthMessage)
async def sign_out(services: CheckinServices = Depends(get_services)):
    """Sign out. Local identity is always cleared."""
    message = await services.auth.sign_out()
    return {"message": message, "status": _status(services)}

from fastapi import Header, HTTPException

from storefront.services.errors import StorefrontException


def current_user_id(x_user_id: int = Header(..., alias="X-User-Id", gt=0)) -> int:
    """
    Authenticated user id. The auth layer in front of this service verifies
    the caller's signed token and forwards the user id in this header.
    """
    return x_user_id


def http_error(e: StorefrontException) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=e.detail())

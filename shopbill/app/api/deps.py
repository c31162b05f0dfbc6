from __future__ import annotations

from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError

from shopbill.app.core.security import decode_access_token
from shopbill.app.services.checkout import ShopContext

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_operator(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> UUID:
    """Resolve the acting operator from the bearer token's subject."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise credentials_exception

    try:
        subject = decode_access_token(credentials.credentials)
        if subject is None:
            raise credentials_exception
        return UUID(subject)
    except (JWTError, ValueError):
        raise credentials_exception


def get_shop_context(
    x_business_id: UUID | None = Header(None),
    x_shop_id: UUID | None = Header(None),
) -> ShopContext | None:
    """Business/shop selected in the dashboard, or None if either is missing."""
    if x_business_id is None or x_shop_id is None:
        return None
    return ShopContext(business_id=x_business_id, shop_id=x_shop_id)


def require_shop_context(
    context: ShopContext | None = Depends(get_shop_context),
) -> ShopContext:
    if context is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Select a business and shop before billing",
        )
    return context

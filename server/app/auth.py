from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt

from app.config import settings
from app.inventory.context import LedgerContext

# Tokens are minted by the auth service; this scheme only reads the bearer header.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


def get_ledger_context(token: str = Depends(oauth2_scheme)) -> LedgerContext:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise credentials_exception

    tenant_id = payload.get("tenant_id")
    actor_id = payload.get("sub")
    if tenant_id is None or actor_id is None:
        raise credentials_exception
    try:
        return LedgerContext(tenant_id=int(tenant_id), actor_id=int(actor_id))
    except (TypeError, ValueError):
        raise credentials_exception

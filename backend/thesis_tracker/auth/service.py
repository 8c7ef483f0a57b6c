"""Bearer token handling and the FastAPI actor dependency."""
from datetime import timedelta
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt

from ..config import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES
from ..models.enums import UserRole
from ..timeutil import utcnow
from .models import ActorContext, TokenData

# Tokens are minted by the identity service; this URL is only advertised in the OpenAPI schema.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/token")


def create_access_token(actor_id: int, role: UserRole, expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed access token for ``(actor_id, role)``."""
    if expires_delta:
        expire = utcnow() + expires_delta
    else:
        expire = utcnow() + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode = {"sub": str(actor_id), "role": role.value, "exp": expire, "type": "access"}
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def verify_token(token: str) -> TokenData:
    """Verify and decode a JWT token."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        raise credentials_exception
    subject = payload.get("sub")
    role = payload.get("role")
    if subject is None or role is None or payload.get("type") != "access":
        raise credentials_exception
    try:
        return TokenData(actor_id=int(subject), role=role)
    except ValueError:
        raise credentials_exception


def decode_actor(token: str) -> ActorContext:
    """Resolve a token into an actor context. Unknown roles are rejected."""
    data = verify_token(token)
    try:
        role = UserRole(data.role)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Unknown role '{data.role}'",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if role == UserRole.system:
        # The system actor only exists inside the process (scheduler)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="System role cannot authenticate")
    return ActorContext(actor_id=data.actor_id, role=role)


def get_current_actor(token: str = Depends(oauth2_scheme)) -> ActorContext:
    """Dependency to get the current actor from the JWT token."""
    return decode_actor(token)


def require_roles(*roles: UserRole):
    """Dependency factory: the current actor, provided their role is one of ``roles``."""
    allowed = frozenset(roles)

    def dependency(actor: ActorContext = Depends(get_current_actor)) -> ActorContext:
        if actor.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role '{actor.role.value}' cannot access this resource",
            )
        return actor

    return dependency

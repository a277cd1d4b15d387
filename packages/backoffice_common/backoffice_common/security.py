"""
Back-office authentication: bearer JWTs issued by the auth service and the
role to permission table every service checks them against.
"""
import os
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext

# Crypto settings
SECRET_KEY = os.getenv("JWT_SECRET_KEY", "CHANGE_ME_BACKOFFICE_SECRET")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30"))
TOKEN_TYPE = "access"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


# --- PASSWORDS ---
def hash_password(password: str) -> str:
    return pwd_context.hash(password)


# --- TOKENS ---
def create_access_token(
    subject: str,
    role: str,
    user_id: Optional[int] = None,
    expires_delta: Optional[timedelta] = None
) -> str:
    """
    Signs a back-office access token.

    Args:
        subject (str): Staff email, stored as `sub`.
        role (str): Key of ROLE_PERMISSIONS.
        user_id (int, optional): Staff account ID.
        expires_delta (timedelta, optional): Lifetime, ACCESS_TOKEN_EXPIRE_MINUTES by default.
    """
    lifetime = expires_delta if expires_delta is not None else timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = {
        "sub": subject,
        "role": role,
        "user_id": user_id,
        "type": TOKEN_TYPE,
        "exp": datetime.now(timezone.utc) + lifetime,
    }
    return jwt.encode(claims, SECRET_KEY, algorithm=ALGORITHM)

def decode_token(token: str) -> Optional[dict]:
    """Claims of a valid, unexpired token, None otherwise."""
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None


# --- PERMISSIONS ---
class Permissions:
    # CUSTOMERS
    CUSTOMER_READ = "customer:read"
    CUSTOMER_CREATE = "customer:create"
    CUSTOMER_UPDATE = "customer:update"
    CUSTOMER_DELETE = "customer:delete"

    # ADDRESSES
    ADDRESS_READ = "address:read"
    ADDRESS_MANAGE = "address:manage"

    # COMPANIES
    COMPANY_READ = "company:read"
    COMPANY_MANAGE = "company:manage"

ALL_PERMISSIONS = "*"

ROLE_PERMISSIONS = {
    "OWNER": {ALL_PERMISSIONS},
    "ADMIN": {ALL_PERMISSIONS},

    # Front desk: fixes customer records and their addresses
    "SUPPORT_AGENT": {
        Permissions.CUSTOMER_READ,
        Permissions.CUSTOMER_UPDATE,
        Permissions.ADDRESS_READ,
        Permissions.ADDRESS_MANAGE,
        Permissions.COMPANY_READ,
    },

    # Invoicing: owns the company identifiers (SIRET, VAT)
    "ACCOUNTANT": {
        Permissions.CUSTOMER_READ,
        Permissions.ADDRESS_READ,
        Permissions.COMPANY_READ,
        Permissions.COMPANY_MANAGE,
    },
}


# --- FASTAPI DEPENDENCIES ---
class UserPayload:
    """Staff member behind the bearer token of the request."""

    def __init__(self, sub: str, role: str, user_id: Optional[int] = None):
        self.sub = sub
        self.role = role
        self.user_id = user_id
        self.permissions = ROLE_PERMISSIONS.get(role, set())

    @classmethod
    def from_claims(cls, claims: dict) -> Optional["UserPayload"]:
        if not claims.get("sub") or claims.get("type") != TOKEN_TYPE:
            return None
        return cls(sub=claims["sub"], role=claims.get("role"), user_id=claims.get("user_id"))

    def has_permission(self, permission: str) -> bool:
        return ALL_PERMISSIONS in self.permissions or permission in self.permissions

def get_current_user(token: str = Depends(oauth2_scheme)) -> UserPayload:
    claims = decode_token(token)
    user = UserPayload.from_claims(claims) if claims else None
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user

class RequirePermission:
    """Route dependency: 403 unless the caller's role grants `permission`."""

    def __init__(self, permission: str):
        self.permission = permission

    def __call__(self, user: UserPayload = Depends(get_current_user)) -> UserPayload:
        if not user.has_permission(self.permission):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Missing permission: {self.permission}"
            )
        return user

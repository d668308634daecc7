# budgetflow/core/security.py

from datetime import datetime, timedelta
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from budgetflow.config import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES
from budgetflow.models.user import User
from budgetflow.services.user_service import UserService

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/token")


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def create_user_token(user: User) -> str:
    return create_access_token({
        "sub": user.id,
        "email": user.email,
        "name": user.full_name,
        "department": user.department,
        "roles": user.role_list,
    })


async def get_current_user(token: str = Depends(oauth2_scheme)) -> dict:
    """
    Identity carried by the bearer token; trusted without another database lookup
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        user_id: str = payload.get("sub")
        if user_id is None:
            raise credentials_exception
    except JWTError:
        raise credentials_exception

    return {
        "user_id": user_id,
        "email": payload.get("email"),
        "roles": payload.get("roles") or [],
    }


async def authenticate_user(session: AsyncSession, email: str, password: str) -> User:
    """
    Raises AuthError on unknown email, wrong password or inactive account
    """
    return await UserService.verify_credentials(session, email, password)

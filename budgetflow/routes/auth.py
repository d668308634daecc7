from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from budgetflow.core.exceptions import BudgetFlowError, AuthError, to_http_exception
from budgetflow.core.security import authenticate_user, create_user_token
from budgetflow.database import get_db
from budgetflow.schemas.user import LoginRequest, RegisterRequest
from budgetflow.services.user_service import UserService
from budgetflow.utils.logger import app_logger

router = APIRouter()


def _unauthorized(e: AuthError):
    exc = to_http_exception(e)
    exc.headers = {"WWW-Authenticate": "Bearer"}
    return exc


@router.post("/token")
async def login_for_access_token(form_data: OAuth2PasswordRequestForm = Depends(),
                                 db: AsyncSession = Depends(get_db)):
    try:
        user = await authenticate_user(db, form_data.username, form_data.password)
    except AuthError as e:
        raise _unauthorized(e)

    return {"access_token": create_user_token(user), "token_type": "bearer"}


@router.post("/login")
async def login(request: LoginRequest, db: AsyncSession = Depends(get_db)):
    try:
        user = await authenticate_user(db, request.email, request.password)
    except AuthError as e:
        raise _unauthorized(e)

    app_logger.info(f"User {user.email} signed in")
    return {
        "code": 200,
        "token": create_user_token(user),
        "token_type": "bearer",
        "user": UserService.to_dict(user),
    }


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(request: RegisterRequest, db: AsyncSession = Depends(get_db)):
    try:
        user = await UserService.register(db, request)
        return {"code": 201, "data": UserService.to_dict(user), "msg": "User created successfully"}
    except BudgetFlowError as e:
        raise to_http_exception(e)

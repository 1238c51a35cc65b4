"""Account API — account creation and login.

Learn: Routes for the unauthenticated side of the API:
- POST /api/create-account → create a user (bcrypt digest stored)
- POST /api/login → email/password → JWT access token

Both routes only translate HTTP to AccountService calls; failures are
MatrixStoreError subclasses rendered by the handlers in errors.py.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from matrixstore.auth.jwt import create_access_token
from matrixstore.db.engine import get_db
from matrixstore.schemas.account import (
    AccountCreate,
    AccountCreated,
    LoginRequest,
    TokenResponse,
)
from matrixstore.services.account_service import AccountService

router = APIRouter()


def _svc(db: AsyncSession = Depends(get_db)) -> AccountService:
    return AccountService(db)


@router.post("/create-account", response_model=AccountCreated, status_code=201)
async def create_account(body: AccountCreate, svc: AccountService = Depends(_svc)):
    """Create a new user account."""
    await svc.create_account(email=body.email, password=body.password)
    return AccountCreated()


@router.post("/login", response_model=TokenResponse)
async def login(body: LoginRequest, svc: AccountService = Depends(_svc)):
    """Login with email and password → JWT access token."""
    user = await svc.authenticate(email=body.email, password=body.password)
    token = create_access_token(user.id)
    return TokenResponse(token=token, access_token=token)

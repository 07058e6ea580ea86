"""Registration and login."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from moviebooks.database import get_db
from moviebooks.schemas import AuthOut, LoginIn, RegisterIn
from moviebooks.services import users

router = APIRouter()


@router.post("/auth/register", response_model=AuthOut, status_code=201)
@router.post("/auth/signup", response_model=AuthOut, status_code=201, include_in_schema=False)
async def register(body: RegisterIn, db: AsyncSession = Depends(get_db)):
    return await users.register(db, body.username, body.email, body.password)


@router.post("/auth/login", response_model=AuthOut)
async def login(body: LoginIn, db: AsyncSession = Depends(get_db)):
    return await users.login(db, body.email, body.password)

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ecom.db import get_db
from ecom.repositories.user_repo import UserRepository
from ecom.schemas.user_schema import LoginIn, SignupIn, TokenOut
from ecom.services.auth_service import create_access_token, hash_password, verify_password

router = APIRouter(tags=["users"])
log = logging.getLogger("ecom.users")

ERR_USER_ALREADY_EXISTS = "user with this email already exists"
ERR_USER_NOT_FOUND = "user not found"
ERR_UNAUTHORIZED = "unauthorized"


@router.post("/signup", status_code=status.HTTP_201_CREATED, summary="Create an account")
def signup(payload: SignupIn, db: Session = Depends(get_db)):
    repo = UserRepository(db)
    email = str(payload.email)
    if repo.get_by_email(email):
        raise HTTPException(status_code=400, detail=ERR_USER_ALREADY_EXISTS)
    try:
        repo.create(
            first_name=payload.first_name,
            last_name=payload.last_name,
            email=email,
            password_hash=hash_password(payload.password),
        )
        db.commit()
    except IntegrityError:
        # lost a race with a concurrent signup for the same email
        db.rollback()
        raise HTTPException(status_code=400, detail=ERR_USER_ALREADY_EXISTS)
    log.info("user created email=%s", email)
    return {"message": "User created successfully"}


@router.post("/login", response_model=TokenOut, summary="Exchange credentials for a token")
def login(payload: LoginIn, db: Session = Depends(get_db)):
    user = UserRepository(db).get_by_email(str(payload.email))
    if not user:
        raise HTTPException(status_code=404, detail=ERR_USER_NOT_FOUND)
    if not verify_password(payload.password, user.password):
        raise HTTPException(status_code=401, detail=ERR_UNAUTHORIZED)
    return {"token": create_access_token(user.id)}

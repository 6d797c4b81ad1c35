from fastapi import APIRouter, Depends, HTTPException, Request

from ..db import Database, get_database
from ..schemas import LoginIn, TokenOut
from ..security import verify_credentials

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=TokenOut)
def login(request: Request, payload: LoginIn, database: Database = Depends(get_database)):
    principal = verify_credentials(database, payload.email, payload.password)
    if principal is None:
        raise HTTPException(status_code=400, detail="Invalid email or password")
    return TokenOut(access_token=request.app.state.tokens.issue_token(principal))

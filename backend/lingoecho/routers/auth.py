from fastapi import APIRouter, HTTPException, Depends
from fastapi.security import OAuth2PasswordRequestForm
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..db import get_db
from ..deps import Principal, get_gate, get_principal, http_error
from ..exceptions import PersistenceError
from ..gate import AuthForm, AuthGate, AuthOutcome
from ..records import Identity

router = APIRouter(prefix="/auth", tags=["auth"])

_STATUS_BY_CODE = {
	"invalid-credential": 401,
	"email-already-in-use": 409,
}


class Token(BaseModel):
	access_token: str
	token_type: str = "bearer"
	identity: Identity


class RegisterRequest(BaseModel):
	email: str
	password: str
	name: str


def _complete(gate: AuthGate, db: Session, form: AuthForm) -> Token:
	try:
		outcome: AuthOutcome = gate.submit(db, form)
	except PersistenceError as exc:
		raise http_error(exc)
	if outcome.error:
		raise HTTPException(
			status_code=_STATUS_BY_CODE.get(outcome.error_code or "", 400),
			detail={
				"error": outcome.error,
				"code": outcome.error_code,
				"form": {"email": outcome.email, "name": outcome.name, "registering": outcome.registering},
			},
		)
	return Token(access_token=outcome.access_token, identity=outcome.identity)


@router.post("/register", response_model=Token, status_code=201)
async def register(req: RegisterRequest, db: Session = Depends(get_db), gate: AuthGate = Depends(get_gate)):
	return _complete(gate, db, AuthForm(email=req.email, password=req.password, name=req.name, registering=True))


@router.post("/token", response_model=Token)
async def login(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db), gate: AuthGate = Depends(get_gate)):
	# OAuth2 password flow: the username field carries the email
	return _complete(gate, db, AuthForm(email=form_data.username, password=form_data.password))


@router.post("/logout", status_code=204)
async def logout(principal: Principal = Depends(get_principal), db: Session = Depends(get_db), gate: AuthGate = Depends(get_gate)):
	gate.sign_out(db, principal.session_id)


@router.get("/me", response_model=Identity)
async def me(principal: Principal = Depends(get_principal)):
	return principal.identity

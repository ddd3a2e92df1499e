"""FastAPI routes for account signup and login."""

import logging

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from controllers.auth_controller import login, signup

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth")


class SignupPayload(BaseModel):
	username: str
	firstname: str = ""
	lastname: str = ""
	password: str


class LoginPayload(BaseModel):
	username: str
	password: str


def _error(status_code: int, message: str) -> JSONResponse:
	return JSONResponse(status_code=status_code, content={"error": message})


@router.post("/signup", status_code=201)
async def signup_route(request: Request, payload: SignupPayload):
	try:
		return await signup(request, payload.username, payload.firstname, payload.lastname, payload.password)
	except HTTPException as exc:
		return _error(exc.status_code, exc.detail)
	except Exception:
		logger.exception("Signup failed for %s", payload.username)
		return _error(500, "Server error")


@router.post("/login")
async def login_route(request: Request, payload: LoginPayload):
	try:
		return await login(request, payload.username, payload.password)
	except HTTPException as exc:
		return _error(exc.status_code, exc.detail)
	except Exception:
		logger.exception("Login failed for %s", payload.username)
		return _error(500, "Server error")

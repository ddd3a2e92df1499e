"""Account signup and login over the credential store."""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import HTTPException, Request

from dal.user_dal import UserDAL
from models.errors import DuplicateUsernameError

logger = logging.getLogger(__name__)


async def signup(request: Request, username: str, firstname: str, lastname: str, password: str) -> Dict[str, Any]:
	"""Create an account and return the stored username.

	Raises:
		HTTPException(400) for blank fields or a duplicate username.
	"""
	username = username.strip()
	if not username or not password:
		raise HTTPException(status_code=400, detail="Username and password are required")
	dal = UserDAL(request.app.state.db_initializer)
	try:
		user = await dal.create_account(username, firstname.strip(), lastname.strip(), password)
	except DuplicateUsernameError as exc:
		raise HTTPException(status_code=400, detail="Username already exists") from exc
	logger.info("Created account %s", user.username)
	return {"success": True, "username": user.username}


async def login(request: Request, username: str, password: str) -> Dict[str, Any]:
	"""Verify credentials and return the public profile.

	Raises:
		HTTPException(401) when the username or password is wrong.
	"""
	dal = UserDAL(request.app.state.db_initializer)
	user = await dal.verify_credentials(username.strip(), password)
	if user is None:
		raise HTTPException(status_code=401, detail="Invalid credentials")
	return {"success": True, **user.to_public()}

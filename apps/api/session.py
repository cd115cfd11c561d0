# apps/api/session.py
"""Identity for API calls.

Sessions are issued by the account service into Redis; this API only resolves
the cookie to a User and keeps the session alive while it is used.
"""
import json
import uuid
from typing import Dict, Optional

import redis
from fastapi import Depends, HTTPException, Request
from fastapi.responses import Response
from sqlalchemy.orm import Session

from config import settings
from db import get_db
from errors import store_guard
from models import User

SESSION_PREFIX = "sess:"
TTL = settings.session_ttl_seconds

redis_client = redis.Redis.from_url(settings.redis_url, decode_responses=True)


def healthcheck() -> bool:
    return bool(redis_client.ping())


def _key(sid: str) -> str:
    return f"{SESSION_PREFIX}{sid}"


def get_session(sid: str) -> Optional[Dict]:
    raw = redis_client.get(_key(sid))
    if not raw:
        return None
    # Rolling TTL: extend on each access
    redis_client.expire(_key(sid), TTL)
    return json.loads(raw)


def _refresh_cookie(response: Response, sid: str) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=sid,
        httponly=True,
        samesite="lax",
        secure=(settings.env.lower() == "production"),
        path="/",
        max_age=TTL,
    )


def get_current_user(
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
) -> User:
    sid = request.cookies.get(settings.session_cookie_name)
    if not sid:
        raise HTTPException(status_code=401, detail="Not authenticated")
    sess = get_session(sid)
    if not sess:
        raise HTTPException(status_code=401, detail="Session expired")
    _refresh_cookie(response, sid)
    user_id = _parse_user_id(sess.get("user_id"))
    with store_guard("get_user"):
        user = db.get(User, user_id)
    if not user:
        redis_client.delete(_key(sid))
        raise HTTPException(status_code=401, detail="User not found")
    return user


def _parse_user_id(raw) -> uuid.UUID:
    try:
        return uuid.UUID(str(raw))
    except (TypeError, ValueError):
        raise HTTPException(status_code=401, detail="Session corrupted")

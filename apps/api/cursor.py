# apps/api/cursor.py
"""Opaque pagination cursors shared by every video listing.

A cursor is the (item id, ordering key) of the last item a client received,
signed so clients cannot forge positions. For time-ordered listings the key is
the item's timestamp; for the ranked feed it is the burst timestamp that seeded
the blend.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

from itsdangerous import BadData, URLSafeSerializer

from config import settings
from errors import InvalidCursor

SALT = "video-cursor"

log = logging.getLogger("cursor")


@dataclass(frozen=True)
class Cursor:
    item_id: uuid.UUID
    ordering_key: datetime


class CursorCodec:
    def __init__(self, secret: Optional[str] = None):
        self._serializer = URLSafeSerializer(secret or settings.cursor_secret, salt=SALT)

    def encode(self, cursor: Cursor) -> str:
        return self._serializer.dumps(
            {"id": str(cursor.item_id), "key": cursor.ordering_key.isoformat()}
        )

    def decode(self, token: Union[str, bytes]) -> Cursor:
        try:
            payload = self._serializer.loads(token)
        except BadData as exc:
            raise InvalidCursor("cursor signature mismatch") from exc
        except (TypeError, ValueError, UnicodeDecodeError) as exc:
            raise InvalidCursor("cursor is not decodable") from exc
        if not isinstance(payload, dict):
            raise InvalidCursor("cursor payload is not an object")
        try:
            return Cursor(
                item_id=uuid.UUID(payload["id"]),
                ordering_key=datetime.fromisoformat(payload["key"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidCursor("cursor payload is incomplete") from exc

    def decode_or_none(self, token: Optional[str]) -> Optional[Cursor]:
        """Decode a client token; a bad token means "start from the beginning"."""
        if not token:
            return None
        try:
            return self.decode(token)
        except InvalidCursor as exc:
            log.info("cursor_invalid: %s", exc)
            return None


codec = CursorCodec()

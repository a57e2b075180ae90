import os
import json
import logging
from datetime import date, datetime, timezone
from functools import lru_cache

from pydantic import ValidationError
from supabase import create_client, Client

from .engine.character import default_character
from .models import CharacterState

logger = logging.getLogger(__name__)

CHARACTERS_TABLE = "characters"
EXPORT_FILENAME = "level-system-backup-{date}.json"


class StoreError(Exception):
    """The character table could not be read."""


@lru_cache(maxsize=1)
def get_client() -> Client:
    url = os.environ["SUPABASE_URL"]
    key = os.environ["SUPABASE_SERVICE_KEY"]
    return create_client(url, key)


def get_device(db: Client, device_id: str) -> dict | None:
    res = db.table("devices").select("*").eq("device_id", device_id).execute()
    return res.data[0] if res.data else None


class CharacterStore:
    """
    Stores one CharacterState document per device. A bad payload is cleared
    and reads as absent. A failed read raises StoreError so callers can tell
    it apart from "no row"; a failed write is logged.
    """

    def __init__(self, db: Client, table: str = CHARACTERS_TABLE):
        self.db = db
        self.table = table

    def load(self, device_id: str) -> CharacterState | None:
        try:
            res = self.db.table(self.table).select("data").eq("device_id", device_id).execute()
        except Exception as e:
            logger.error("Load failed for %s...: %s", device_id[:8], e)
            raise StoreError(str(e)) from e
        if not res.data:
            return None

        payload = res.data[0].get("data")
        try:
            if isinstance(payload, str):
                payload = json.loads(payload)
            return CharacterState.model_validate(payload)
        except (ValueError, TypeError, ValidationError) as e:
            logger.error("Discarding malformed character for %s...: %s", device_id[:8], e)
            self.remove(device_id)
            return None

    def save(self, device_id: str, state: CharacterState) -> None:
        try:
            self.db.table(self.table).upsert({
                "device_id": device_id,
                "data": state.model_dump(mode="json"),
                "updated_at": datetime.now(timezone.utc).isoformat(),
            }).execute()
        except Exception as e:
            logger.error("Save failed for %s...: %s", device_id[:8], e)

    def remove(self, device_id: str) -> None:
        try:
            self.db.table(self.table).delete().eq("device_id", device_id).execute()
        except Exception as e:
            logger.error("Remove failed for %s...: %s", device_id[:8], e)

    def load_or_default(self, device_id: str, character_name: str = "Hero") -> CharacterState:
        """Read-only fallback: a failed read degrades to the default template."""
        try:
            state = self.load(device_id)
        except StoreError:
            state = None
        return state or default_character(character_name)

    def device_ids(self) -> list[str]:
        res = self.db.table(self.table).select("device_id").execute()
        return [row["device_id"] for row in (res.data or [])]


def export_document(state: CharacterState, today: date | None = None) -> tuple[str, str]:
    """Returns (filename, JSON text) for a downloadable backup."""
    today = today or date.today()
    body = {"exported_at": today.isoformat(), **state.model_dump(mode="json")}
    return EXPORT_FILENAME.format(date=today.isoformat()), json.dumps(body, indent=2, ensure_ascii=False)

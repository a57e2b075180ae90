"""
Level System — FastAPI backend
"""
import logging
import threading
from datetime import date

from fastapi import FastAPI, Header, HTTPException, Depends, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from .db import get_client, get_device, CharacterStore, StoreError, export_document
from .engine.achievements import catalog_with_status
from .engine.analytics import summarize
from .engine.challenges import list_challenges
from .engine.character import default_character
from .engine.cosmetics import shop_listing
from .engine.errors import EngineError
from .engine.progression import Engine, Notification
from .engine.tiers import color_of, progress_of, tier_of
from .models import (
    CharacterState, DeviceRegister, ProfilePatch,
    QuestBody, ChallengeBody, StatBody, EquipBody,
)

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address)
app = FastAPI(title="Level System API")
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

ALLOWED_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",
]
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    allow_headers=["Authorization", "Content-Type"],
)


@app.exception_handler(EngineError)
def _engine_error_handler(request: Request, exc: EngineError):
    return JSONResponse(status_code=exc.status_code, content={"detail": str(exc)})


@app.get("/health")
def health():
    try:
        db = get_client()
        db.table("devices").select("device_id").limit(1).execute()
        return {"status": "ok", "db": "ok"}
    except Exception as e:
        logger.error("Health check DB failure: %s", e)
        raise HTTPException(status_code=503, detail="DB unavailable")


# ── Auth ──────────────────────────────────────────────────────────────────────

def get_device_id(authorization: str = Header(...)) -> str:
    if not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Missing Bearer token")
    return authorization.removeprefix("Bearer ").strip()


def require_device(device_id: str = Depends(get_device_id)) -> str:
    db = get_client()
    if not get_device(db, device_id):
        raise HTTPException(status_code=404, detail="Device not registered")
    return device_id


def get_store() -> CharacterStore:
    return CharacterStore(get_client())


# ── Engine session ────────────────────────────────────────────────────────────

_device_locks: dict[str, threading.Lock] = {}
_device_locks_guard = threading.Lock()


def device_lock(device_id: str) -> threading.Lock:
    """One lock per device; requests for the same character run one at a time."""
    with _device_locks_guard:
        return _device_locks.setdefault(device_id, threading.Lock())


class Session:
    """
    One request's worth of engine work: load, run, save, respond.

    Used as a context manager. The device lock is held from load to the end
    of the block, so overlapping requests never save over each other. When
    the store could not be read the request runs on the default template and
    nothing is written back.
    """

    def __init__(self, device_id: str):
        self.device_id = device_id
        self.store = get_store()
        self.notifications: list[Notification] = []
        self.persist = True
        self.dirty = False
        self._lock = device_lock(device_id)

    def __enter__(self) -> "Session":
        self._lock.acquire()
        try:
            try:
                state = self.store.load(self.device_id)
            except StoreError:
                logger.warning("Store unavailable for %s..., serving defaults", self.device_id[:8])
                state = None
                self.persist = False
            self.engine = Engine(state or default_character(), notify=self.notifications.append)
            self.dirty = self.engine.midnight_reset()
        except BaseException:
            self._lock.release()
            raise
        return self

    def __exit__(self, *exc) -> None:
        self._lock.release()

    def respond(self, **extra) -> dict:
        """Builds the response; saves only if something changed."""
        if self.dirty and self.persist:
            self.store.save(self.device_id, self.engine.state)
        for note in self.notifications:
            logger.info("Notify %s...: %s", self.device_id[:8], note.to_dict())
        return {
            **extra,
            "character": character_view(self.engine.state),
            "notifications": [n.to_dict() for n in self.notifications],
        }

    def commit(self, **extra) -> dict:
        self.dirty = True
        return self.respond(**extra)


def character_view(state: CharacterState) -> dict:
    mega = bool(state.mega_quests_completed)
    tiers = {}
    for name, value in state.stats.items():
        tier = tier_of(value, mega)
        tiers[name] = {"tier": tier, "progress": progress_of(value), "color": color_of(tier)}
    return {**state.model_dump(mode="json"), "tiers": tiers}


# ── Register ──────────────────────────────────────────────────────────────────

@app.post("/api/devices", status_code=201)
@limiter.limit("10/minute")
def register_device(request: Request, body: DeviceRegister):
    db = get_client()
    if get_device(db, body.device_id):
        return {"status": "already_registered"}
    db.table("devices").insert({"device_id": body.device_id, "character_name": body.character_name}).execute()
    with device_lock(body.device_id):
        get_store().save(body.device_id, default_character(body.character_name))
    logger.info("Device registered: %s (%s)", body.device_id[:8], body.character_name)
    return {"status": "registered"}


# ── Character ─────────────────────────────────────────────────────────────────

@app.get("/api/character")
def get_character(device_id: str = Depends(require_device)):
    with Session(device_id) as session:
        return session.respond()


@app.patch("/api/character")
def update_character(body: ProfilePatch, device_id: str = Depends(require_device)):
    with Session(device_id) as session:
        session.engine.rename_character(body.character_name)
        get_client().table("devices").update(
            {"character_name": session.engine.state.character_name}
        ).eq("device_id", device_id).execute()
        return session.commit()


@app.post("/api/stats", status_code=201)
def add_stat(body: StatBody, device_id: str = Depends(require_device)):
    with Session(device_id) as session:
        name = session.engine.add_stat(body.name)
        return session.commit(stat=name)


@app.patch("/api/stats/{stat_name}")
def rename_stat(stat_name: str, body: StatBody, device_id: str = Depends(require_device)):
    with Session(device_id) as session:
        name = session.engine.rename_stat(stat_name, body.name)
        return session.commit(stat=name)


@app.delete("/api/stats/{stat_name}")
def delete_stat(stat_name: str, device_id: str = Depends(require_device)):
    with Session(device_id) as session:
        session.engine.delete_stat(stat_name)
        return session.commit()


@app.post("/api/skills/{skill_name}/upgrade")
@limiter.limit("60/minute")
def upgrade_skill(request: Request, skill_name: str, device_id: str = Depends(require_device)):
    with Session(device_id) as session:
        upgraded = session.engine.upgrade_skill(skill_name)
        return session.commit(changed=upgraded)


# ── Quests ────────────────────────────────────────────────────────────────────

@app.get("/api/quests")
def get_quests(day: str | None = None, device_id: str = Depends(require_device)):
    with Session(device_id) as session:
        quests = session.engine.quests_for_day(day)
        return session.respond(quests=[q.model_dump(mode="json") for q in quests])


@app.post("/api/quests", status_code=201)
@limiter.limit("30/minute")
def create_quest(request: Request, body: QuestBody, device_id: str = Depends(require_device)):
    with Session(device_id) as session:
        quest = session.engine.create_quest(**body.model_dump())
        return session.commit(quest=quest.model_dump(mode="json"))


@app.patch("/api/quests/{quest_id}")
def update_quest(quest_id: str, body: QuestBody, device_id: str = Depends(require_device)):
    with Session(device_id) as session:
        quest = session.engine.update_quest(quest_id, **body.model_dump())
        return session.commit(quest=quest.model_dump(mode="json"))


@app.delete("/api/quests/{quest_id}")
def delete_quest(quest_id: str, device_id: str = Depends(require_device)):
    with Session(device_id) as session:
        session.engine.delete_quest(quest_id)
        return session.commit()


@app.post("/api/quests/{quest_id}/complete")
@limiter.limit("60/minute")
def complete_quest(request: Request, quest_id: str, device_id: str = Depends(require_device)):
    with Session(device_id) as session:
        changed = session.engine.complete(quest_id)
        return session.commit(changed=changed)


@app.post("/api/quests/{quest_id}/redo")
@limiter.limit("60/minute")
def redo_quest(request: Request, quest_id: str, device_id: str = Depends(require_device)):
    with Session(device_id) as session:
        changed = session.engine.redo(quest_id)
        return session.commit(changed=changed)


# ── Challenges ────────────────────────────────────────────────────────────────

@app.get("/api/challenges")
def get_challenges(device_id: str = Depends(require_device)):
    with Session(device_id) as session:
        challenges = list_challenges(session.engine.state)
        return session.respond(challenges=[c.model_dump(mode="json") for c in challenges])


@app.post("/api/challenges/weekly", status_code=201)
@limiter.limit("10/minute")
def generate_weekly(request: Request, device_id: str = Depends(require_device)):
    with Session(device_id) as session:
        challenge = session.engine.generate_weekly()
        return session.commit(challenge=challenge.model_dump(mode="json"))


@app.post("/api/challenges/monthly", status_code=201)
@limiter.limit("10/minute")
def generate_monthly(request: Request, device_id: str = Depends(require_device)):
    with Session(device_id) as session:
        challenge = session.engine.generate_monthly()
        return session.commit(challenge=challenge.model_dump(mode="json"))


@app.post("/api/challenges", status_code=201)
@limiter.limit("30/minute")
def create_challenge(request: Request, body: ChallengeBody, device_id: str = Depends(require_device)):
    with Session(device_id) as session:
        challenge = session.engine.create_challenge(**body.model_dump())
        return session.commit(challenge=challenge.model_dump(mode="json"))


@app.patch("/api/challenges/{challenge_id}")
def update_challenge(challenge_id: str, body: ChallengeBody, device_id: str = Depends(require_device)):
    with Session(device_id) as session:
        challenge = session.engine.update_challenge(challenge_id, **body.model_dump())
        return session.commit(challenge=challenge.model_dump(mode="json"))


@app.delete("/api/challenges/{challenge_id}")
def delete_challenge(challenge_id: str, device_id: str = Depends(require_device)):
    with Session(device_id) as session:
        session.engine.delete_challenge(challenge_id)
        return session.commit()


# ── Achievements & analytics ──────────────────────────────────────────────────

@app.get("/api/achievements")
def get_achievements(device_id: str = Depends(require_device)):
    with Session(device_id) as session:
        return session.respond(achievements=catalog_with_status(session.engine.state))


@app.get("/api/analytics")
def get_analytics(device_id: str = Depends(require_device)):
    with Session(device_id) as session:
        return session.respond(analytics=summarize(session.engine.state))


# ── Cosmetics ─────────────────────────────────────────────────────────────────

@app.get("/api/cosmetics")
def get_cosmetics(device_id: str = Depends(require_device)):
    with Session(device_id) as session:
        return session.respond(shop=shop_listing(session.engine.state))


@app.post("/api/cosmetics/{item_id}/buy")
@limiter.limit("30/minute")
def buy_cosmetic(request: Request, item_id: str, device_id: str = Depends(require_device)):
    with Session(device_id) as session:
        bought = session.engine.buy_cosmetic(item_id)
        return session.commit(changed=bought)


@app.put("/api/cosmetics/{slot}")
def equip_cosmetic(slot: str, body: EquipBody, device_id: str = Depends(require_device)):
    with Session(device_id) as session:
        session.engine.equip_cosmetic(slot, body.item_id)
        return session.commit()


@app.delete("/api/cosmetics/{slot}")
def unequip_cosmetic(slot: str, device_id: str = Depends(require_device)):
    with Session(device_id) as session:
        session.engine.unequip_cosmetic(slot)
        return session.commit()


# ── Export / reset ────────────────────────────────────────────────────────────

@app.get("/api/export")
@limiter.limit("10/minute")
def export_character(request: Request, device_id: str = Depends(require_device)):
    with device_lock(device_id):
        state = get_store().load_or_default(device_id)
    filename, body = export_document(state, date.today())
    return Response(
        content=body,
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.delete("/api/me", status_code=200)
def reset_me(device_id: str = Depends(require_device)):
    store = get_store()
    with device_lock(device_id):
        store.remove(device_id)
        store.save(device_id, default_character())
    logger.info("Character reset: %s...", device_id[:8])
    return {"status": "reset", "message": "All progress has been permanently reset."}

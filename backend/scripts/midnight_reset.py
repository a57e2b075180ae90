"""
Midnight sweep: clear the completion flag on every stored character's weekday
quests once per calendar day. Challenges are left alone.

Safe to run any number of times per day; characters already swept today are
skipped. Meant to be driven by cron shortly after midnight.

Usage:
    SUPABASE_URL=... SUPABASE_SERVICE_KEY=... python scripts/midnight_reset.py [device_id ...] [--dry-run]

Or with a .env file in the working directory.
"""
import sys
from datetime import date

from dotenv import load_dotenv

from levelsys.db import CharacterStore, StoreError, get_client
from levelsys.engine.progression import Engine


def sweep(store: CharacterStore, device_id: str, today: date, dry_run: bool = False) -> bool:
    try:
        state = store.load(device_id)
    except StoreError:
        print(f"  {device_id[:8]}... store unavailable, skipped")
        return False
    if state is None:
        print(f"  {device_id[:8]}... no character stored, skipped")
        return False

    cleared = sum(1 for q in state.quests if q.completed)
    ran = Engine(state).midnight_reset(today)
    if not ran:
        print(f"  {device_id[:8]}... already reset today")
        return False

    print(f"  {device_id[:8]}... cleared {cleared} completed quest(s)")
    if not dry_run:
        store.save(device_id, state)
    return True


def run(device_ids: list[str], dry_run: bool = False) -> int:
    today = date.today()
    store = CharacterStore(get_client())
    if not device_ids:
        device_ids = store.device_ids()

    print(f"\n🌙 Midnight reset for {today.isoformat()} ({len(device_ids)} character(s))\n")
    swept = sum(1 for device_id in device_ids if sweep(store, device_id, today, dry_run))

    if dry_run:
        print("\n  DRY RUN — no changes written.")
    print(f"\n✅ {swept} character(s) reset.\n")
    return swept


if __name__ == "__main__":
    load_dotenv()
    args = [a for a in sys.argv[1:] if a != "--dry-run"]
    run(args, dry_run="--dry-run" in sys.argv)

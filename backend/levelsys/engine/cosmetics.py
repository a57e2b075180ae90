"""
Cosmetics shop: buy with currency, equip one item per slot.
"""
from dataclasses import dataclass

from ..models import CharacterState
from .errors import NotFoundError, ValidationError

SLOTS = ("hat", "weapon", "accessory")


@dataclass(frozen=True)
class CosmeticItem:
    id: str
    name: str
    slot: str
    price: int
    icon: str


COSMETICS: list[CosmeticItem] = [
    CosmeticItem("crown",   "Golden Crown",  "hat",       500, "👑"),
    CosmeticItem("cap",     "Red Cap",       "hat",       200, "🧢"),
    CosmeticItem("helmet",  "Knight Helmet", "hat",       600, "⛑️"),
    CosmeticItem("bandana", "Ninja Bandana", "hat",       250, "🥷"),
    CosmeticItem("sword",   "Steel Sword",   "weapon",    300, "⚔️"),
    CosmeticItem("axe",     "Battle Axe",    "weapon",    450, "🪓"),
    CosmeticItem("bow",     "Magic Bow",     "weapon",    350, "🏹"),
    CosmeticItem("staff",   "Wizard Staff",  "weapon",    550, "🪄"),
    CosmeticItem("cape",    "Purple Cape",   "accessory", 400, "🦸"),
    CosmeticItem("wings",   "Angel Wings",   "accessory", 800, "👼"),
    CosmeticItem("shield",  "Royal Shield",  "accessory", 350, "🛡️"),
    CosmeticItem("aura",    "Fire Aura",     "accessory", 700, "🔥"),
]

COSMETIC_BY_ID: dict[str, CosmeticItem] = {c.id: c for c in COSMETICS}


def get_item(item_id: str) -> CosmeticItem:
    item = COSMETIC_BY_ID.get(item_id)
    if item is None:
        raise NotFoundError(f"No cosmetic with id {item_id}")
    return item


def buy(state: CharacterState, item_id: str) -> bool:
    """Already owned or unaffordable is a silent no-op (returns False)."""
    item = get_item(item_id)
    if item.id in state.owned_cosmetics or state.currency < item.price:
        return False
    state.currency -= item.price
    state.owned_cosmetics.append(item.id)
    return True


def equip(state: CharacterState, slot: str, item_id: str) -> None:
    if slot not in SLOTS:
        raise ValidationError(f"Unknown cosmetic slot: {slot}")
    item = get_item(item_id)
    if item.slot != slot:
        raise ValidationError(f"{item.name} does not fit the {slot} slot")
    if item.id not in state.owned_cosmetics:
        raise ValidationError(f"{item.name} has not been bought yet")
    setattr(state.cosmetics, slot, item.id)


def unequip(state: CharacterState, slot: str) -> None:
    if slot not in SLOTS:
        raise ValidationError(f"Unknown cosmetic slot: {slot}")
    setattr(state.cosmetics, slot, None)


def shop_listing(state: CharacterState) -> list[dict]:
    owned = set(state.owned_cosmetics)
    return [
        {
            "id": item.id,
            "name": item.name,
            "slot": item.slot,
            "price": item.price,
            "icon": item.icon,
            "owned": item.id in owned,
            "equipped": getattr(state.cosmetics, item.slot) == item.id,
            "can_buy": item.id not in owned and state.currency >= item.price,
        }
        for item in COSMETICS
    ]

"""
Stat tiers: pure functions, no state access.
"""

# (threshold, label), ascending
TIERS: list[tuple[int, str]] = [
    (0, "D-"), (10, "D"), (21, "D+"), (33, "C-"), (46, "C"), (60, "C+"),
    (75, "B-"), (91, "B"), (108, "B+"), (126, "A-"), (145, "A"), (165, "A+"),
    (186, "S-"), (208, "S"), (231, "S+"), (255, "SS-"), (280, "SS"), (306, "SS+"),
    (333, "SSS"),
]

# (band start, band width); the top band has no width and always reads 100%
TIER_BANDS: list[tuple[int, int]] = [
    (0, 10), (10, 11), (21, 12), (33, 13), (46, 14), (60, 15),
    (75, 16), (91, 17), (108, 18), (126, 19), (145, 20), (165, 21),
    (186, 22), (208, 23), (231, 24), (255, 25), (280, 26), (306, 27), (333, 0),
]

TIER_COLORS: dict[str, tuple[float, float, float]] = {
    "D-": (0.4, 0.4, 0.4), "D": (0.47, 0.47, 0.47), "D+": (0.53, 0.53, 0.53),
    "C-": (0.27, 0.67, 0.27), "C": (0.33, 0.73, 0.33), "C+": (0.4, 0.8, 0.4),
    "B-": (0.27, 0.27, 0.67), "B": (0.33, 0.33, 0.73), "B+": (0.4, 0.4, 0.8),
    "A-": (0.8, 0.8, 0.27), "A": (0.87, 0.87, 0.33), "A+": (0.93, 0.93, 0.4),
    "S-": (0.8, 0.53, 0.27), "S": (0.87, 0.6, 0.33), "S+": (0.93, 0.67, 0.4),
    "SS-": (0.8, 0.27, 0.27), "SS": (0.87, 0.33, 0.33), "SS+": (0.93, 0.4, 0.4),
    "SSS": (0.67, 0.13, 0.13),
}
DEFAULT_COLOR = (0.4, 0.4, 0.4)

MAX_STAT = TIERS[-1][0]


def tier_of(value: int, mega_unlocked: bool = False) -> str:
    """
    Highest tier whose threshold is <= value.
    SSS additionally needs at least one Mega quest on record; without it the
    top band reads SS+.
    """
    if value >= MAX_STAT:
        return "SSS" if mega_unlocked else "SS+"
    for threshold, label in reversed(TIERS[:-1]):
        if value >= threshold:
            return label
    return "D-"


def progress_of(value: int) -> float:
    """Percentage [0, 100] through the current tier band."""
    for i, (start, width) in enumerate(TIER_BANDS):
        if i == len(TIER_BANDS) - 1 or value < TIER_BANDS[i + 1][0]:
            if width == 0:
                return 100.0
            return min(100.0, max(0.0, (value - start) / width * 100))
    return 0.0


def color_of(tier: str) -> tuple[float, float, float]:
    return TIER_COLORS.get(tier, DEFAULT_COLOR)


def is_ss_tier(tier: str) -> bool:
    return "SS" in tier

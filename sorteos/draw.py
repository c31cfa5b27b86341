"""
Verifiable raffle draw.

Winners are picked with a linear congruential generator seeded from the
draw seed, so anyone holding the entries and the seed can recompute the
result. The selection itself is pure; ``sorteos.services.raffles`` runs it
against the database.
"""

from __future__ import annotations

import base64
import re
import secrets
import time
from collections.abc import Sequence
from typing import Any

# LCG constants; changing them invalidates every stored draw_seed
LCG_MULTIPLIER = 9301
LCG_INCREMENT = 49297
LCG_MODULUS = 233280

_NON_ALNUM = re.compile(r"[^a-zA-Z0-9]")


def generate_seed() -> str:
    """Return a new alphanumeric draw seed built from the clock and random bytes."""
    raw = f"{int(time.time() * 1000)}-{secrets.token_hex(8)}"
    return _NON_ALNUM.sub("", base64.b64encode(raw.encode("ascii")).decode("ascii"))


def seed_number(seed: str) -> int:
    """Sum of the code points of the seed."""
    return sum(ord(ch) for ch in seed)


def select_winners(
    entries: Sequence[dict[str, Any]],
    total_winners: int,
    seed: str,
) -> list[dict[str, Any]]:
    """
    Pick up to total_winners entries deterministically.

    For each position the generator advances once and the pick index is the
    generator value modulo the number of entries still available; the picked
    entry is removed before the next position.

    Args:
        entries: Entry rows with ``id``, ``user_id`` and ``ticket_number``.
        total_winners: Number of prizes.
        seed: Draw seed.

    Returns:
        Winner dicts with ``entry_id``, ``user_id``, ``ticket_number``,
        ``prize_position`` (1..k) and ``user_name`` when the entry carries a profile.
    """
    if not entries or total_winners <= 0:
        return []

    available = list(entries)
    winners = []
    n = seed_number(seed)

    for position in range(1, min(total_winners, len(available)) + 1):
        n = (n * LCG_MULTIPLIER + LCG_INCREMENT) % LCG_MODULUS
        index = n % len(available)
        entry = available.pop(index)
        profile = entry.get("profile") or {}
        winners.append(
            {
                "entry_id": entry["id"],
                "user_id": entry.get("user_id"),
                "ticket_number": entry.get("ticket_number"),
                "prize_position": position,
                "user_name": profile.get("full_name"),
            }
        )

    return winners


def verify_draw(
    entries: Sequence[dict[str, Any]],
    winners: Sequence[dict[str, Any]],
    seed: str,
) -> bool:
    """
    Check a stored draw against its entries and seed.

    Winners must all be entries, be unique, hold positions 1..k, and re-running
    the selection with the seed must reproduce the same set of entries.
    """
    entry_ids = {e["id"] for e in entries}
    winner_ids = [w["entry_id"] for w in winners]

    if not all(wid in entry_ids for wid in winner_ids):
        return False

    if len(set(winner_ids)) != len(winner_ids):
        return False

    positions = sorted(w["prize_position"] for w in winners)
    if positions != list(range(1, len(positions) + 1)):
        return False

    recreated = select_winners(entries, len(winners), seed)
    return sorted(w["entry_id"] for w in recreated) == sorted(winner_ids)


def filter_entries_for_mode(entries: Sequence[dict[str, Any]], entry_mode: str) -> list[dict[str, Any]]:
    """Keep the entries a raffle's entry mode admits."""
    if entry_mode == "subscribers_only":
        return [e for e in entries if e.get("entry_source") == "subscription"]
    if entry_mode == "tickets_only":
        return [e for e in entries if e.get("entry_source") == "manual_purchase"]
    return list(entries)


def win_rate(total_entries: int, total_winners: int) -> str:
    """Winners over entries as a percentage with two decimals ("0" without entries)."""
    if not total_entries:
        return "0"
    return f"{total_winners / total_entries * 100:.2f}"

"""
Pit (court) assignment for pending matches.

In-progress matches keep the pit they are on. Pending matches queue by
(round, created_at) and take the free pits in order; the rest wait on deck
with no pit.
"""
import copy
import logging
from typing import Dict, List, Optional

from .errors import NotFoundError, PreconditionError
from .models import LeagueMatch

logger = logging.getLogger(__name__)


def pits_in_use(matches: List[LeagueMatch], tournament_id: str) -> set:
    return {
        m.pit_number for m in matches
        if m.tournament_id == tournament_id and m.status == 'in_progress' and m.pit_number is not None
    }


def reassign_pits(tournament_id: str, matches: List[LeagueMatch], available_pits: int) -> List[Dict]:
    """
    Compute pit changes for a tournament's pending matches.

    Returns a patch list of {'match_id', 'pit_number'} for every pending match
    whose pit changes. Apply it with apply_pit_patches, then persist.
    """
    if not available_pits:
        return []

    used = pits_in_use(matches, tournament_id)
    free_pits = [pit for pit in range(1, available_pits + 1) if pit not in used]

    pending = sorted(
        (m for m in matches if m.tournament_id == tournament_id and m.status == 'pending'),
        key=lambda m: (m.round, m.created_at or '')
    )

    patches = []
    for position, match in enumerate(pending):
        pit_number = free_pits[position] if position < len(free_pits) else None
        if match.pit_number != pit_number:
            patches.append({'match_id': match.id, 'pit_number': pit_number})

    if patches:
        logger.info("Reassigning pits for tournament %s - free: %s, in use: %s, %d changes",
                    tournament_id, free_pits, sorted(used), len(patches))
    return patches


def apply_pit_patches(matches: List[LeagueMatch], patches: List[Dict]) -> List[LeagueMatch]:
    """Return copies of the matches with the patches applied."""
    by_id = {patch['match_id']: patch['pit_number'] for patch in patches}
    updated = []
    for match in matches:
        if match.id in by_id:
            match = copy.copy(match)
            match.pit_number = by_id[match.id]
        updated.append(match)
    return updated


def ensure_pit_free(matches: List[LeagueMatch], match_id: str, pit_number: Optional[int] = None):
    """Raise PreconditionError if starting this match would share a pit.

    Uses the match's current pit unless pit_number is given.
    """
    match = next((m for m in matches if m.id == match_id), None)
    if match is None:
        raise NotFoundError(f"Unknown match: {match_id}")
    pit = pit_number if pit_number is not None else match.pit_number
    if pit is None:
        return
    for other in matches:
        if (other.id != match.id and other.tournament_id == match.tournament_id
                and other.status == 'in_progress' and other.pit_number == pit):
            raise PreconditionError(f"Pit {pit} is already in use by match {other.id}")

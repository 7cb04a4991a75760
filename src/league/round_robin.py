"""
Round robin schedule generation for small fields (2-8 teams).

Uses the circle method: team 0 stays fixed, the others rotate one position
after each round, and position i plays position n-1-i. Odd fields get a
synthetic BYE team; any pairing with it produces no match.
"""
import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple

from .errors import PreconditionError
from .models import LeagueMatch, Team

logger = logging.getLogger(__name__)

MIN_ROUND_ROBIN_TEAMS = 2
MAX_ROUND_ROBIN_TEAMS = 8
BYE = 'BYE'

# team count -> (double round robin, target points)
ROUND_ROBIN_POLICY: Dict[int, Tuple[bool, int]] = {
    2: (False, 30),
    3: (False, 30),
    4: (True, 30),
    5: (True, 21),
    6: (False, 30),
    7: (False, 30),
    8: (False, 21),
}


class RoundRobinSchedule:
    """Result of a (re)generation.

    ``superseded_match_ids`` lists the tournament's existing matches; the
    caller must delete them before saving ``matches``.
    """

    def __init__(self, matches, double_round_robin, target_points, superseded_match_ids=None):
        self.matches = matches
        self.double_round_robin = double_round_robin
        self.target_points = target_points
        self.superseded_match_ids = superseded_match_ids if superseded_match_ids is not None else []

    @property
    def total_rounds(self) -> int:
        return max((m.round for m in self.matches), default=0)

    def __repr__(self):
        return (f"RoundRobinSchedule(matches={len(self.matches)}, rounds={self.total_rounds}, "
                f"double={self.double_round_robin}, target_points={self.target_points})")


def get_round_robin_policy(num_teams: int) -> Tuple[bool, int]:
    """Return (double round robin, target points) for a field size."""
    if num_teams not in ROUND_ROBIN_POLICY:
        raise PreconditionError(
            f"Round robin needs {MIN_ROUND_ROBIN_TEAMS}-{MAX_ROUND_ROBIN_TEAMS} teams (have {num_teams})"
        )
    return ROUND_ROBIN_POLICY[num_teams]


def round_robin_pairings(team_ids: List[str]) -> List[List[Tuple[str, str]]]:
    """One full cycle of pairings, one list per round, byes dropped."""
    rotation = list(team_ids)
    if len(rotation) % 2 == 1:
        rotation.append(BYE)

    size = len(rotation)
    rounds = []
    for _ in range(size - 1):
        pairs = []
        for i in range(size // 2):
            team1 = rotation[i]
            team2 = rotation[size - 1 - i]
            if team1 != BYE and team2 != BYE:
                pairs.append((team1, team2))
        rounds.append(pairs)
        # Last team moves to position 1, team 0 stays put
        rotation.insert(1, rotation.pop())
    return rounds


def generate_round_robin(tournament_id: str, teams: List[Team], available_pits: int = 0,
                         existing_matches: Optional[List[LeagueMatch]] = None,
                         force_regenerate: bool = False,
                         created_at: Optional[datetime] = None) -> Optional[RoundRobinSchedule]:
    """
    Build the round robin schedule for a tournament.

    Returns None (no-op) when the tournament already has matches and
    force_regenerate is not set. Round numbers continue across both cycles of
    a double round robin.
    """
    double_round_robin, target_points = get_round_robin_policy(len(teams))
    team_ids = [team.id for team in teams]
    if len(set(team_ids)) != len(team_ids):
        raise PreconditionError("Each team can only be scheduled once")

    existing = [m for m in existing_matches or [] if m.tournament_id == tournament_id]
    if existing and not force_regenerate:
        logger.warning(
            "Tournament %s already has %d matches; pass force_regenerate to rebuild the schedule",
            tournament_id, len(existing)
        )
        return None

    base_time = created_at or datetime.now()
    cycles = 2 if double_round_robin else 1

    matches = []
    global_round = 0
    for _ in range(cycles):
        for pairs in round_robin_pairings(team_ids):
            global_round += 1
            for team1_id, team2_id in pairs:
                counter = len(matches)
                pit_number = (counter % available_pits) + 1 if available_pits > 0 else None
                matches.append(LeagueMatch(
                    id=f"{tournament_id}-rr-{counter + 1}",
                    tournament_id=tournament_id,
                    team1_id=team1_id,
                    team2_id=team2_id,
                    status='pending',
                    round=global_round,
                    target_points=target_points,
                    pit_number=pit_number,
                    # Strictly increasing so pit queues keep generation order
                    created_at=(base_time + timedelta(milliseconds=counter)).isoformat(timespec='microseconds'),
                ))

    n = len(teams)
    logger.info(
        "Generated %s round robin for %d teams: %d matches over %d rounds (games to %d points)",
        'DOUBLE' if double_round_robin else 'STANDARD', n, len(matches), global_round, target_points
    )
    if existing:
        logger.info("Superseding %d existing matches for tournament %s", len(existing), tournament_id)

    return RoundRobinSchedule(
        matches=matches,
        double_round_robin=double_round_robin,
        target_points=target_points,
        superseded_match_ids=[m.id for m in existing],
    )

"""
Fixed double elimination topology.

A bracket match never stores a pointer to the match it feeds. Where a winner
or loser goes is derived from (section, round, index) using the functions and
tables in this module, for each supported field size.

Layout for a field of N = 2**k slots:
- Winners bracket: k rounds, N/2, N/4, ... 1 matches
- Losers bracket: 2*(k-1) rounds alternating minor and major rounds
  - Minor rounds (1, 3, 5...): losers bracket survivors pair off
    (round 1 pairs the first round losers)
  - Major rounds (2, 4, 6...): winners bracket losers drop in against the
    survivors of the previous minor round
- Finals: Grand Final, then a Bracket Reset only if the losers bracket
  champion wins the Grand Final
"""
import math
from typing import Dict, List, Optional, Tuple

from .errors import InconsistentStateError, PreconditionError

MIN_DOUBLE_ELIMINATION_TEAMS = 10
SUPPORTED_FIELD_SIZES = (16, 32)
MAX_DOUBLE_ELIMINATION_TEAMS = max(SUPPORTED_FIELD_SIZES)

# (winners_round, match_index) -> (losers_round, match_index, slot)
#
# Round 1 losers pair off in order. Later drops are reversed or have their
# halves swapped so that teams from the same part of the winners bracket do
# not meet again straight away in the losers bracket.
DROP_TABLES: Dict[int, Dict[Tuple[int, int], Tuple[int, int, int]]] = {
    16: {
        (1, 0): (1, 0, 1), (1, 1): (1, 0, 2),
        (1, 2): (1, 1, 1), (1, 3): (1, 1, 2),
        (1, 4): (1, 2, 1), (1, 5): (1, 2, 2),
        (1, 6): (1, 3, 1), (1, 7): (1, 3, 2),
        (2, 0): (2, 3, 1), (2, 1): (2, 2, 1), (2, 2): (2, 1, 1), (2, 3): (2, 0, 1),
        (3, 0): (4, 1, 1), (3, 1): (4, 0, 1),
        (4, 0): (6, 0, 1),
    },
    32: {
        (1, 0): (1, 0, 1), (1, 1): (1, 0, 2),
        (1, 2): (1, 1, 1), (1, 3): (1, 1, 2),
        (1, 4): (1, 2, 1), (1, 5): (1, 2, 2),
        (1, 6): (1, 3, 1), (1, 7): (1, 3, 2),
        (1, 8): (1, 4, 1), (1, 9): (1, 4, 2),
        (1, 10): (1, 5, 1), (1, 11): (1, 5, 2),
        (1, 12): (1, 6, 1), (1, 13): (1, 6, 2),
        (1, 14): (1, 7, 1), (1, 15): (1, 7, 2),
        (2, 0): (2, 7, 1), (2, 1): (2, 6, 1), (2, 2): (2, 5, 1), (2, 3): (2, 4, 1),
        (2, 4): (2, 3, 1), (2, 5): (2, 2, 1), (2, 6): (2, 1, 1), (2, 7): (2, 0, 1),
        (3, 0): (4, 2, 1), (3, 1): (4, 3, 1), (3, 2): (4, 0, 1), (3, 3): (4, 1, 1),
        (4, 0): (6, 1, 1), (4, 1): (6, 0, 1),
        (5, 0): (8, 0, 1),
    },
}

# A destination: (section, round, match_index, slot)
Destination = Tuple[str, int, int, int]


def calculate_bracket_size(num_teams: int) -> int:
    """Calculate the bracket size (next power of 2)."""
    if num_teams <= 0:
        return 0
    return 2 ** math.ceil(math.log2(num_teams))


def calculate_byes(num_teams: int) -> int:
    """Calculate number of byes needed."""
    return calculate_bracket_size(num_teams) - num_teams


def field_size_for(num_teams: int) -> int:
    """Supported field size for a double elimination bracket of num_teams."""
    if num_teams < MIN_DOUBLE_ELIMINATION_TEAMS:
        raise PreconditionError(
            f"Double elimination needs at least {MIN_DOUBLE_ELIMINATION_TEAMS} teams (have {num_teams})"
        )
    if num_teams > MAX_DOUBLE_ELIMINATION_TEAMS:
        raise PreconditionError(
            f"Double elimination supports at most {MAX_DOUBLE_ELIMINATION_TEAMS} teams (have {num_teams})"
        )
    field_size = calculate_bracket_size(num_teams)
    return max(field_size, SUPPORTED_FIELD_SIZES[0])


def winners_round_count(field_size: int) -> int:
    return int(math.log2(field_size))


def losers_round_count(field_size: int) -> int:
    """
    Calculate number of rounds in losers bracket.
    For N slots in winners bracket (power of 2):
    - Winners bracket has log2(N) rounds
    - Losers bracket has 2 * (log2(N) - 1) rounds
    """
    if field_size < 2:
        return 0
    return 2 * (winners_round_count(field_size) - 1)


def winners_round_match_count(field_size: int, round_num: int) -> int:
    return field_size // (2 ** round_num)


def losers_round_match_count(field_size: int, round_num: int) -> int:
    # L1 and L2 both hold N/4 matches, L3 and L4 N/8, and so on
    return field_size // (2 ** ((round_num + 1) // 2 + 1))


def total_match_count(field_size: int) -> int:
    """Winners (N-1) + losers (N-2) + Grand Final + Bracket Reset."""
    return 2 * field_size - 1


def generate_bracket_order(bracket_size: int) -> List[int]:
    """
    Generate the standard tournament bracket order.
    This ensures that if all higher seeds win, they meet in the proper rounds.

    For 8 teams: [1, 8, 4, 5, 2, 7, 3, 6]
    This gives matchups: 1v8, 4v5, 2v7, 3v6
    """
    if bracket_size == 2:
        return [1, 2]

    half_size = bracket_size // 2
    upper_half = generate_bracket_order(half_size)
    lower_half = [bracket_size + 1 - seed for seed in upper_half]

    result = []
    for u, l in zip(upper_half, lower_half):
        result.extend([u, l])
    return result


def get_winners_round_name(teams_in_round: int) -> str:
    """Get the name for a winners bracket round."""
    if teams_in_round == 2:
        return "Winners Final"
    elif teams_in_round == 4:
        return "Winners Semifinal"
    elif teams_in_round == 8:
        return "Winners Quarterfinal"
    else:
        return f"Winners Round of {teams_in_round}"


def get_losers_round_name(round_num: int, total_losers_rounds: int) -> str:
    """Get the name for a losers bracket round (1-indexed)."""
    rounds_from_end = total_losers_rounds - round_num
    if rounds_from_end == 0:
        return "Losers Final"
    elif rounds_from_end == 1:
        return "Losers Semifinal"
    else:
        return f"Losers Round {round_num}"


def drop_table(field_size: int) -> Dict[Tuple[int, int], Tuple[int, int, int]]:
    try:
        return DROP_TABLES[field_size]
    except KeyError:
        raise InconsistentStateError(f"No drop table for a {field_size}-slot field")


def winner_destination(field_size: int, section: str, round_num: int, index: int) -> Optional[Destination]:
    """Where the winner of a match goes; None once the finals are decided."""
    if section == 'winners':
        if round_num < winners_round_count(field_size):
            return ('winners', round_num + 1, index // 2, index % 2 + 1)
        return ('finals', 1, 0, 1)
    if section == 'losers':
        if round_num == losers_round_count(field_size):
            return ('finals', 1, 0, 2)
        if round_num % 2 == 1:
            # Minor round survivors meet the next wave of winners bracket drops
            return ('losers', round_num + 1, index, 2)
        return ('losers', round_num + 1, index // 2, index % 2 + 1)
    return None


def loser_destination(field_size: int, section: str, round_num: int, index: int) -> Optional[Destination]:
    """Where the loser of a match goes; None when the loss eliminates them."""
    if section != 'winners':
        return None
    try:
        losers_round, losers_index, slot = drop_table(field_size)[(round_num, index)]
    except KeyError:
        raise InconsistentStateError(
            f"Drop table for {field_size} slots has no entry for winners round {round_num} match {index}"
        )
    return ('losers', losers_round, losers_index, slot)

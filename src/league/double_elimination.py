"""
Double elimination bracket generation and winner advancement.

In double elimination:
- Teams must lose twice to be eliminated
- Winners Bracket: Teams that haven't lost yet
- Losers Bracket: Teams that have lost once
- Grand Final: Winners bracket champion vs Losers bracket champion
- Bracket Reset: If losers bracket winner wins Grand Final, a final match decides the champion

Brackets are plain in-memory structures. ``advance_winner`` never mutates the
bracket it is given; it returns an updated copy, so a rejected result leaves
the caller's state untouched.
"""
import copy
import logging
from datetime import datetime
from typing import Dict, List, Optional

from .errors import InconsistentStateError, NotFoundError, PreconditionError
from .models import Bracket, BracketMatch, BracketRound, BracketTeam, LeagueMatch, Slot
from .topology import (
    calculate_byes,
    field_size_for,
    generate_bracket_order,
    get_losers_round_name,
    get_winners_round_name,
    loser_destination,
    losers_round_count,
    losers_round_match_count,
    total_match_count,
    winner_destination,
    winners_round_count,
    winners_round_match_count,
)

logger = logging.getLogger(__name__)

GRAND_FINAL_ID = 'GF'
BRACKET_RESET_ID = 'BR'


def seed_bracket_teams(teams, players: Optional[Dict] = None) -> List[BracketTeam]:
    """Build bracket entrants from tournament teams.

    Teams keep their stored seed; unseeded teams follow in registration order.
    """
    ordered = sorted(
        enumerate(teams),
        key=lambda pair: (pair[1].seed is None, pair[1].seed or 0, pair[0])
    )
    return [
        BracketTeam(id=team.id, name=team.display_name(players), seed=rank)
        for rank, (_, team) in enumerate(ordered, start=1)
    ]


def generate_bracket(teams: List[BracketTeam]) -> Bracket:
    """
    Generate a complete double elimination bracket.

    Every match is created up front with a sequential match number (winners
    rounds, then losers rounds, then the finals). First round slots hold the
    seeded teams or byes; byes resolve immediately.

    Raises PreconditionError for fewer than 10 teams, more than the largest
    supported field, or duplicate team ids.
    """
    field_size = field_size_for(len(teams))
    team_ids = [team.id for team in teams]
    if len(set(team_ids)) != len(team_ids):
        raise PreconditionError("Each team can only be entered in the bracket once")

    seeded = sorted(teams, key=lambda t: t.seed)
    seed_to_team = {
        rank: BracketTeam(id=team.id, name=team.name, seed=rank)
        for rank, team in enumerate(seeded, start=1)
    }

    match_number = 1
    winners_rounds = []
    for round_num in range(1, winners_round_count(field_size) + 1):
        num_matches = winners_round_match_count(field_size, round_num)
        round_matches = []
        for index in range(num_matches):
            round_matches.append(BracketMatch(
                id=f"W{round_num}-M{index + 1}",
                match_number=match_number,
                round=round_num,
                bracket_section='winners',
                index=index,
            ))
            match_number += 1
        winners_rounds.append(BracketRound(
            round_num, 'winners', get_winners_round_name(num_matches * 2), round_matches
        ))

    losers_rounds = []
    total_losers_rounds = losers_round_count(field_size)
    for round_num in range(1, total_losers_rounds + 1):
        round_matches = []
        for index in range(losers_round_match_count(field_size, round_num)):
            round_matches.append(BracketMatch(
                id=f"L{round_num}-M{index + 1}",
                match_number=match_number,
                round=round_num,
                bracket_section='losers',
                index=index,
            ))
            match_number += 1
        losers_rounds.append(BracketRound(
            round_num, 'losers', get_losers_round_name(round_num, total_losers_rounds), round_matches
        ))

    grand_final = BracketMatch(
        id=GRAND_FINAL_ID, match_number=match_number, round=1, bracket_section='finals', index=0
    )
    bracket_reset = BracketMatch(
        id=BRACKET_RESET_ID, match_number=match_number + 1, round=2, bracket_section='finals', index=0
    )
    finals_rounds = [
        BracketRound(1, 'finals', 'Grand Final', [grand_final]),
        BracketRound(2, 'finals', 'Bracket Reset', [bracket_reset]),
    ]

    bracket = Bracket(field_size, winners_rounds, losers_rounds, finals_rounds)

    bracket_order = generate_bracket_order(field_size)
    first_round = winners_rounds[0].matches
    for match in first_round:
        for position in (1, 2):
            seed = bracket_order[match.index * 2 + position - 1]
            team = seed_to_team.get(seed)
            match.set_slot(position, Slot.scheduled(team) if team else Slot.bye())
    for match in first_round:
        _resolve_bye(bracket, match)

    logger.info(
        "Generated double elimination bracket: %d teams, %d-slot field, %d byes, %d matches",
        len(teams), field_size, calculate_byes(len(teams)), len(bracket.all_matches)
    )
    return bracket


def advance_winner(bracket: Bracket, match_id: str, winner_id: str, loser_id: str,
                   team1_score: int, team2_score: int) -> Bracket:
    """
    Record a match result and move both teams to their next slots.

    Returns a new bracket. The caller mirrors the result into one LeagueMatch
    row (see league_match_from_bracket_result).
    """
    if team1_score == team2_score:
        raise PreconditionError(f"Match {match_id} cannot end in a tie ({team1_score}-{team2_score})")
    if winner_id == loser_id:
        raise PreconditionError("Winner and loser must be different teams")

    updated = copy.deepcopy(bracket)
    match = updated.find_match(match_id)

    if match.is_completed:
        raise PreconditionError(f"Match {match_id} has already been completed")
    if not (match.team1.is_scheduled and match.team2.is_scheduled):
        raise PreconditionError(f"Match {match_id} is still waiting for its teams")

    slots = {match.team1.team.id: match.team1, match.team2.team.id: match.team2}
    for team_id in (winner_id, loser_id):
        if team_id not in slots:
            raise NotFoundError(f"Team {team_id} is not playing in match {match_id}")

    winner_slot = slots[winner_id]
    loser_slot = slots[loser_id]

    match.team1_score = team1_score
    match.team2_score = team2_score
    match.status = 'completed'
    match.winner_id = winner_id
    match.loser_id = loser_id
    logger.info("Match %s (#%d) completed: %s beat %s %d-%d", match.id, match.match_number,
                winner_slot.team.name, loser_slot.team.name, team1_score, team2_score)

    if match.bracket_section == 'finals':
        _decide_finals(updated, match, winner_slot, loser_slot)
        return updated

    _place(updated, winner_destination(updated.field_size, match.bracket_section, match.round, match.index),
           winner_slot)
    drop = loser_destination(updated.field_size, match.bracket_section, match.round, match.index)
    if drop is None:
        logger.info("  -> %s eliminated with %d losses", loser_slot.team.name,
                    count_losses(updated, loser_id))
    else:
        _place(updated, drop, loser_slot)
    return updated


def _decide_finals(bracket: Bracket, match: BracketMatch, winner_slot: Slot, loser_slot: Slot):
    if match.round == 2:
        logger.info("  -> Bracket reset decided. Champion: %s", winner_slot.team.name)
        return

    # Slot 1 of the Grand Final is the undefeated winners bracket champion
    if loser_slot is not match.team1:
        logger.info("  -> Grand Final decided. Champion: %s", winner_slot.team.name)
        return

    reset = bracket.reset_match
    if not (reset.team1.is_empty and reset.team2.is_empty):
        raise InconsistentStateError("Bracket reset match was already populated")
    reset.team1 = match.team1
    reset.team2 = match.team2
    reset.status = 'pending'
    logger.info("  -> Losers bracket champion %s won the Grand Final, bracket reset activated",
                winner_slot.team.name)


def _place(bracket: Bracket, destination, slot: Slot):
    if destination is None:
        return
    section, round_num, index, position = destination
    target = bracket.get_match(section, round_num, index)
    if not target.slot(position).is_empty:
        raise InconsistentStateError(
            f"Slot {position} of {target.id} is already filled ({target.slot(position).label()})"
        )
    target.set_slot(position, slot)
    logger.debug("  -> %s moves to %s (slot %d)", slot.label(), target.id, position)
    _resolve_bye(bracket, target)


def _resolve_bye(bracket: Bracket, match: BracketMatch):
    """Settle a match that has a bye on one side, cascading into the slots it feeds."""
    if match.is_completed or match.team1.is_empty or match.team2.is_empty:
        return
    if not (match.team1.is_bye or match.team2.is_bye):
        return

    if match.team1.is_scheduled:
        advancing = match.team1
    elif match.team2.is_scheduled:
        advancing = match.team2
    else:
        advancing = Slot.bye()

    match.status = 'completed'
    match.is_bye = True
    match.winner_id = advancing.team.id if advancing.is_scheduled else None
    logger.debug("  -> %s resolved as a bye, %s advances", match.id, advancing.label())

    _place(bracket, winner_destination(bracket.field_size, match.bracket_section, match.round, match.index),
           advancing)
    _place(bracket, loser_destination(bracket.field_size, match.bracket_section, match.round, match.index),
           Slot.bye())


def count_losses(bracket: Bracket, team_id: str) -> int:
    """Losses are never stored; they are counted from completed matches."""
    return sum(1 for m in bracket.all_matches if m.is_completed and m.loser_id == team_id)


def is_eliminated(bracket: Bracket, team_id: str) -> bool:
    return count_losses(bracket, team_id) >= 2


def bracket_teams(bracket: Bracket) -> List[BracketTeam]:
    """All entrants, in first round order."""
    teams = []
    for match in bracket.winners_rounds[0].matches:
        for slot in (match.team1, match.team2):
            if slot.is_scheduled:
                teams.append(slot.team)
    return teams


def active_teams(bracket: Bracket) -> List[BracketTeam]:
    return [team for team in bracket_teams(bracket) if not is_eliminated(bracket, team.id)]


def get_champion(bracket: Bracket) -> Optional[BracketTeam]:
    """The tournament winner, or None while the bracket is still open."""
    reset = bracket.reset_match
    if reset.is_completed:
        return reset.team1.team if reset.winner_id == reset.team1.team.id else reset.team2.team
    grand_final = bracket.grand_final
    if grand_final.is_completed and grand_final.winner_id == grand_final.team1.team.id:
        return grand_final.team1.team
    return None


def is_bracket_complete(bracket: Bracket) -> bool:
    return get_champion(bracket) is not None


def playable_matches(bracket: Bracket) -> List[BracketMatch]:
    """Matches with both teams known and no result yet, in match number order."""
    return sorted((m for m in bracket.all_matches if m.is_ready), key=lambda m: m.match_number)


def validate_bracket(bracket: Bracket):
    """Raise InconsistentStateError if stored bracket state breaks its invariants."""
    matches = bracket.all_matches
    expected = total_match_count(bracket.field_size)
    if len(matches) != expected:
        raise InconsistentStateError(
            f"A {bracket.field_size}-slot bracket has {expected} matches, found {len(matches)}"
        )

    ids = [m.id for m in matches]
    if len(set(ids)) != len(ids):
        raise InconsistentStateError("Duplicate match ids in bracket")

    numbers = sorted(m.match_number for m in matches)
    if numbers != list(range(1, expected + 1)):
        raise InconsistentStateError("Match numbers must run from 1 without gaps")

    for section in ('winners', 'losers', 'finals'):
        for bracket_round in bracket.rounds_for(section):
            for index, match in enumerate(bracket_round.matches):
                if (match.bracket_section, match.round, match.index) != (section, bracket_round.round, index):
                    raise InconsistentStateError(f"Match {match.id} is filed under the wrong round")


def league_match_from_bracket_result(tournament_id: str, match: BracketMatch,
                                     created_at: Optional[str] = None) -> LeagueMatch:
    """Mirror one played bracket match into the flat match history."""
    if not match.is_completed or match.is_bye:
        raise PreconditionError(f"Match {match.id} has no played result to record")
    return LeagueMatch(
        id=f"{tournament_id}-{match.id}",
        tournament_id=tournament_id,
        team1_id=match.team1.team.id,
        team2_id=match.team2.team.id,
        team1_score=match.team1_score,
        team2_score=match.team2_score,
        winner_team_id=match.winner_id,
        status='completed',
        round=match.round,
        bracket_match_id=match.id,
        created_at=created_at or datetime.now().isoformat(),
    )

"""
Season standings, tournament placements and prize payouts.

Standings are never stored as running totals. They are recomputed from every
completed tournament of the current season on each call.
"""
import copy
import logging
import uuid
from datetime import datetime
from typing import Dict, List, Optional

from .models import LeagueMatch, PastSeason, Player, PlayerSeasonStats, Team, Tournament
from .stats import compute_team_stats
from .topology import MIN_DOUBLE_ELIMINATION_TEAMS

logger = logging.getLogger(__name__)

PARTICIPATION_POINTS = 1
PLACEMENT_POINTS = (10, 5, 3)
PAYOUT_SHARES = (0.5, 0.3, 0.2)
PLAYERS_PER_TEAM = 2


def is_double_elimination(tournament: Tournament) -> bool:
    return len(tournament.teams) >= MIN_DOUBLE_ELIMINATION_TEAMS


def _elimination_time(team_id: str, matches: List[LeagueMatch]) -> str:
    """created_at of the team's second loss, or its first if it only has one."""
    losses = sorted(
        (m for m in matches if team_id in (m.team1_id, m.team2_id) and m.winner_team_id != team_id),
        key=lambda m: m.created_at or ''
    )
    if not losses:
        return ''
    loss = losses[1] if len(losses) >= 2 else losses[0]
    return loss.created_at or ''


def infer_placements(tournament: Tournament, matches: List[LeagueMatch]) -> List[Optional[Team]]:
    """
    Work out the 1st, 2nd and 3rd place teams of a tournament.

    Round robin: the top three of the team stats ranking.

    Double elimination: teams with fewer than two losses are active, the rest
    are eliminated, latest elimination ranked highest.
    - 1 active, 2+ eliminated: active team, then the last two eliminated
    - 2 active, 1+ eliminated: both active teams, then the last eliminated
    - 3+ active: top three active teams (provisional, bracket still open)

    Returns a list of three entries; a place that cannot be decided is None.
    """
    team_stats = compute_team_stats(tournament, matches)
    teams_by_id = {team.id: team for team in tournament.teams}
    placed_ids: List[Optional[str]] = [None, None, None]

    if is_double_elimination(tournament):
        completed = [
            m for m in matches if m.tournament_id == tournament.id and m.status == 'completed'
        ]
        active = [s.team_id for s in team_stats if s.losses < 2]
        # reverse=True keeps the stats order between equal elimination times
        eliminated = sorted(
            (s.team_id for s in team_stats if s.losses >= 2),
            key=lambda team_id: _elimination_time(team_id, completed),
            reverse=True
        )

        if len(active) == 1 and len(eliminated) >= 2:
            placed_ids = [active[0], eliminated[0], eliminated[1]]
        elif len(active) == 2 and len(eliminated) >= 1:
            placed_ids = [active[0], active[1], eliminated[0]]
        elif len(active) >= 3:
            placed_ids = active[:3]
    else:
        for place, stat in enumerate(team_stats[:3]):
            placed_ids[place] = stat.team_id

    return [teams_by_id.get(team_id) if team_id else None for team_id in placed_ids]


def compute_season_standings(players: List[Player], tournaments: List[Tournament],
                             matches: List[LeagueMatch],
                             class_filter: Optional[str] = None) -> List[PlayerSeasonStats]:
    """
    Calculate the season leaderboard.

    Each completed tournament gives every participating player a point, and
    both players of the top three teams 10/5/3 more. An admin override
    (custom_season_points) is added on top. Players with no tournaments and
    no override are left out.

    Ranking: points, then 1st, 2nd and 3rd place finishes, all descending.
    """
    stats = {player.id: PlayerSeasonStats(player_id=player.id) for player in players}

    for tournament in tournaments:
        if tournament.status != 'completed':
            continue

        participants = set()
        for team in tournament.teams:
            participants.update(team.player_ids)
        for player_id in participants:
            if player_id in stats:
                stats[player_id].tournaments_played += 1
                stats[player_id].points += PARTICIPATION_POINTS

        placements = infer_placements(tournament, matches)
        for place, team in enumerate(placements):
            if team is None:
                continue
            for player_id in team.player_ids:
                player_stats = stats.get(player_id)
                if player_stats is None:
                    continue
                player_stats.points += PLACEMENT_POINTS[place]
                if place == 0:
                    player_stats.first_place_finishes += 1
                elif place == 1:
                    player_stats.second_place_finishes += 1
                else:
                    player_stats.third_place_finishes += 1

    standings = []
    for player in players:
        if class_filter and player.player_class != class_filter:
            continue
        player_stats = stats[player.id]
        if player_stats.tournaments_played == 0 and player.custom_season_points is None:
            continue
        if player.custom_season_points is not None:
            player_stats.points += player.custom_season_points
        standings.append(player_stats)

    return sorted(standings, key=lambda s: (
        -s.points,
        -s.first_place_finishes,
        -s.second_place_finishes,
        -s.third_place_finishes,
    ))


def calculate_payouts(tournament: Tournament, placements: List[Optional[Team]]) -> List[Dict]:
    """Prize money for the placed teams; the pool is entry fee x teams x 2 players."""
    prize_pool = (tournament.entry_fee or 0) * len(tournament.teams) * PLAYERS_PER_TEAM
    payouts = []
    for place, (team, share) in enumerate(zip(placements, PAYOUT_SHARES), start=1):
        if team is None:
            continue
        team_payout = round(prize_pool * share, 2)
        payouts.append({
            'place': place,
            'team_id': team.id,
            'team_payout': team_payout,
            'player_payout': round(team_payout / PLAYERS_PER_TEAM, 2),
        })
    return payouts


def archive_season(name: str, players: List[Player], tournaments: List[Tournament],
                   matches: List[LeagueMatch], now: Optional[datetime] = None) -> Dict:
    """
    Close the current season.

    Snapshots class A and class B standings into a PastSeason, clears every
    player's point override and drops completed tournaments and their
    matches. Returns the new state; nothing passed in is modified.
    """
    timestamp = (now or datetime.now()).isoformat()
    past_season = PastSeason(
        id=uuid.uuid4().hex,
        name=name,
        end_date=timestamp,
        class_a_standings=compute_season_standings(players, tournaments, matches, 'A'),
        class_b_standings=compute_season_standings(players, tournaments, matches, 'B'),
        created_at=timestamp,
    )

    updated_players = []
    for player in players:
        player = copy.copy(player)
        player.custom_season_points = None
        updated_players.append(player)

    completed_ids = {t.id for t in tournaments if t.status == 'completed'}
    remaining_tournaments = [t for t in tournaments if t.id not in completed_ids]
    remaining_matches = [m for m in matches if m.tournament_id not in completed_ids]

    logger.info("Archived season %r: %d class A and %d class B standings, %d tournaments removed",
                name, len(past_season.class_a_standings), len(past_season.class_b_standings),
                len(completed_ids))
    return {
        'past_season': past_season,
        'players': updated_players,
        'tournaments': remaining_tournaments,
        'matches': remaining_matches,
    }

"""
Per-tournament team statistics, folded from the match history.
"""
from typing import List

from .models import LeagueMatch, TeamStats, Tournament


def compute_team_stats(tournament: Tournament, matches: List[LeagueMatch]) -> List[TeamStats]:
    """
    Calculate win/loss and point totals for every team in a tournament.

    Only completed matches of this tournament count. A team that played and
    is not the recorded winner is charged a loss.

    Ranking: wins desc, then losses asc. The sort is stable, so any remaining
    tie keeps the tournament's team order.
    """
    stats = {team.id: TeamStats(team_id=team.id) for team in tournament.teams}

    for match in matches:
        if match.tournament_id != tournament.id or match.status != 'completed':
            continue
        for team_id, points, ringers in (
            (match.team1_id, match.team1_score, match.team1_ringers),
            (match.team2_id, match.team2_score, match.team2_ringers),
        ):
            team_stats = stats.get(team_id)
            if team_stats is None:
                continue
            team_stats.total_points += points or 0
            team_stats.total_ringers += ringers or 0
            team_stats.matches += 1
            if match.winner_team_id == team_id:
                team_stats.wins += 1
            else:
                team_stats.losses += 1

    return sorted(stats.values(), key=lambda s: (-s.wins, s.losses))

"""
Tests for per-tournament team statistics.
"""
from conftest import completed_match
from league.models import LeagueMatch
from league.stats import compute_team_stats


def test_wins_losses_and_totals(round_robin_tournament):
    matches = [
        completed_match('m1', 'rr', 't1', 't2', 't1', '2026-06-06T10:00:00', 21, 12),
        completed_match('m2', 'rr', 't1', 't3', 't1', '2026-06-06T10:01:00', 30, 28),
        completed_match('m3', 'rr', 't2', 't3', 't2', '2026-06-06T10:02:00', 21, 3),
    ]
    matches[0].team1_ringers = 4
    matches[1].team1_ringers = 2

    stats = {s.team_id: s for s in compute_team_stats(round_robin_tournament, matches)}
    assert (stats['t1'].wins, stats['t1'].losses) == (2, 0)
    assert stats['t1'].total_points == 51
    assert stats['t1'].total_ringers == 6
    assert stats['t1'].matches == 2
    assert (stats['t3'].wins, stats['t3'].losses) == (0, 2)
    assert stats['t3'].total_points == 31
    assert stats['t4'].matches == 0


def test_ranking_wins_then_losses(round_robin_tournament):
    matches = [
        completed_match('m1', 'rr', 't1', 't2', 't1', '2026-06-06T10:00:00'),
        completed_match('m2', 'rr', 't1', 't3', 't1', '2026-06-06T10:01:00'),
        completed_match('m3', 'rr', 't2', 't3', 't2', '2026-06-06T10:02:00'),
    ]
    ranked = [s.team_id for s in compute_team_stats(round_robin_tournament, matches)]
    assert ranked == ['t1', 't2', 't4', 't3']


def test_ties_keep_team_order(round_robin_tournament):
    ranked = [s.team_id for s in compute_team_stats(round_robin_tournament, [])]
    assert ranked == ['t1', 't2', 't3', 't4']


def test_ignores_pending_and_other_tournaments(round_robin_tournament):
    matches = [
        LeagueMatch(id='p1', tournament_id='rr', team1_id='t1', team2_id='t2',
                    team1_score=20, team2_score=5, status='in_progress'),
        completed_match('x1', 'other', 't1', 't2', 't2', '2026-06-06T10:00:00'),
    ]
    stats = compute_team_stats(round_robin_tournament, matches)
    assert all(s.matches == 0 and s.total_points == 0 for s in stats)

"""
Shared pytest fixtures for horseshoe league tests.

Running tests:
    pytest tests/                  - full suite
    pytest tests/ -m "not slow"   - skip the full bracket simulations
"""
import pytest
import sys
import os

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from league.models import Player, Team, Tournament, LeagueMatch, BracketTeam


def build_teams(count, prefix='t'):
    """Teams t1..tN, each with two players p{2i-1} and p{2i}."""
    return [
        Team(id=f"{prefix}{i}", player1_id=f"p{2 * i - 1}", player2_id=f"p{2 * i}",
             name=f"Team {i}", seed=i)
        for i in range(1, count + 1)
    ]


def build_bracket_teams(count):
    return [BracketTeam(id=f"t{i}", name=f"Team {i}", seed=i) for i in range(1, count + 1)]


def completed_match(match_id, tournament_id, team1_id, team2_id, winner_id,
                    created_at, team1_score=None, team2_score=None, round=1):
    if team1_score is None:
        team1_score = 21 if winner_id == team1_id else 12
    if team2_score is None:
        team2_score = 21 if winner_id == team2_id else 12
    return LeagueMatch(
        id=match_id, tournament_id=tournament_id, team1_id=team1_id, team2_id=team2_id,
        team1_score=team1_score, team2_score=team2_score, winner_team_id=winner_id,
        status='completed', round=round, created_at=created_at,
    )


@pytest.fixture
def players():
    """Sixteen players; the first eight are class A."""
    return [
        Player(id=f"p{i}", name=f"Player {i}", player_class='A' if i <= 8 else 'B')
        for i in range(1, 17)
    ]


@pytest.fixture
def four_teams():
    return build_teams(4)


@pytest.fixture
def round_robin_tournament():
    """A completed four team round robin tournament (no matches yet)."""
    return Tournament(id='rr', name='Spring Pitch', entry_fee=10, available_pits=2,
                      teams=build_teams(4), status='completed')


@pytest.fixture
def client():
    """Create a test client for the JSON API."""
    from app import app
    app.config['TESTING'] = True
    with app.test_client() as client:
        yield client


@pytest.fixture
def temp_data_dir(tmp_path, monkeypatch):
    """Point the app's store at an empty temporary data directory."""
    import app as app_module

    data_dir = tmp_path / "data"
    data_dir.mkdir()
    monkeypatch.setattr(app_module, 'DATA_DIR', str(data_dir))
    return str(data_dir)

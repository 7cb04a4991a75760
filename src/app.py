"""
Flask web application for the Horseshoe League.

A thin JSON layer for the tournament director: every route loads the store,
runs one engine function, applies the result and flushes.
"""
import os
import uuid
from datetime import datetime
from flask import Flask, request, jsonify
from league.errors import LeagueError, InconsistentStateError, PreconditionError
from league.models import Player, Team, Tournament, LeagueMatch
from league.store import LeagueStore
from league.double_elimination import (
    seed_bracket_teams,
    generate_bracket,
    advance_winner,
    get_champion,
    validate_bracket,
    league_match_from_bracket_result,
)
from league.round_robin import generate_round_robin
from league.pits import reassign_pits, apply_pit_patches, ensure_pit_free
from league.stats import compute_team_stats
from league.standings import (
    infer_placements,
    is_double_elimination,
    compute_season_standings,
    calculate_payouts,
    archive_season,
)

app = Flask(__name__)

BASE_DIR = os.path.dirname(os.path.dirname(__file__))
DATA_DIR = os.environ.get('LEAGUE_DATA_DIR', os.path.join(BASE_DIR, 'data'))

MATCH_STATUSES = {'pending', 'in_progress', 'completed'}
TOURNAMENT_STATUSES = {'setup', 'active', 'completed'}
BRACKET_RESULT_FIELDS = ('team1_score', 'team2_score')


def get_store() -> LeagueStore:
    return LeagueStore(DATA_DIR)


def _new_id() -> str:
    return uuid.uuid4().hex[:12]


def _now() -> str:
    return datetime.now().isoformat(timespec='microseconds')


def _require_json() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        raise PreconditionError('Request body must be JSON')
    return data


@app.errorhandler(LeagueError)
def handle_league_error(error):
    """Map engine errors onto HTTP responses."""
    if isinstance(error, InconsistentStateError):
        app.logger.error(f'Inconsistent league state: {error}')
    else:
        app.logger.warning(f'Rejected request to {request.path}: {error}')
    return jsonify({'error': str(error)}), error.status_code


def _reassign_after_change(store: LeagueStore, tournament: Tournament) -> list:
    """Re-run pit assignment for a tournament and apply it to the store."""
    patches = reassign_pits(tournament.id, store.matches, tournament.available_pits)
    if patches:
        store.matches = apply_pit_patches(store.matches, patches)
    return patches


# ---------------------------------------------------------------- players

@app.route('/api/players', methods=['GET'])
def api_list_players():
    store = get_store().load()
    return jsonify({'players': [p.to_dict() for p in store.players]})


@app.route('/api/players', methods=['POST'])
def api_add_player():
    """Register a new player."""
    data = _require_json()
    name = (data.get('name') or '').strip()
    if not name:
        return jsonify({'error': 'Player name is required'}), 400
    player_class = data.get('player_class', 'B')
    if player_class not in ('A', 'B'):
        return jsonify({'error': 'Player class must be A or B'}), 400

    player = Player(
        id=_new_id(),
        name=name,
        player_class=player_class,
        has_paid_membership=bool(data.get('has_paid_membership', False)),
        created_at=_now(),
    )
    with get_store().transaction() as store:
        store.players.append(player)
    return jsonify({'success': True, 'player': player.to_dict()}), 201


@app.route('/api/players/<player_id>', methods=['PATCH'])
def api_update_player(player_id):
    """Rename a player, change their class or set a season points override."""
    data = _require_json()
    with get_store().transaction() as store:
        player = store.get_player(player_id)
        if 'name' in data:
            player.name = (data['name'] or '').strip() or player.name
        if 'player_class' in data:
            if data['player_class'] not in ('A', 'B'):
                raise PreconditionError('Player class must be A or B')
            player.player_class = data['player_class']
        if 'has_paid_membership' in data:
            player.has_paid_membership = bool(data['has_paid_membership'])
        if 'custom_season_points' in data:
            points = data['custom_season_points']
            player.custom_season_points = int(points) if points is not None else None
    return jsonify({'success': True, 'player': player.to_dict()})


@app.route('/api/players/<player_id>', methods=['DELETE'])
def api_delete_player(player_id):
    """Remove a player who is not on any tournament team."""
    with get_store().transaction() as store:
        player = store.get_player(player_id)
        entered = [t.name for t in store.tournaments
                   if any(player.id in team.player_ids for team in t.teams)]
        if entered:
            raise PreconditionError(f"{player.name} is on a team in: {', '.join(entered)}")
        store.players = [p for p in store.players if p.id != player.id]
    app.logger.info(f'Deleted player {player.name}')
    return jsonify({'success': True})


# ------------------------------------------------------------ tournaments

@app.route('/api/tournaments', methods=['GET'])
def api_list_tournaments():
    store = get_store().load()
    return jsonify({'tournaments': [t.to_dict() for t in store.tournaments]})


def _parse_teams(raw_teams) -> list:
    teams = []
    for position, raw in enumerate(raw_teams or [], start=1):
        if not raw.get('player1_id') or not raw.get('player2_id'):
            raise PreconditionError('Every team needs two players')
        teams.append(Team(
            id=raw.get('id') or _new_id(),
            player1_id=raw['player1_id'],
            player2_id=raw['player2_id'],
            name=raw.get('name'),
            seed=raw.get('seed', position),
        ))
    return teams


@app.route('/api/tournaments', methods=['POST'])
def api_create_tournament():
    """Create a tournament, optionally with its teams."""
    data = _require_json()
    name = (data.get('name') or '').strip()
    if not name:
        return jsonify({'error': 'Tournament name is required'}), 400

    with get_store().transaction() as store:
        settings = store.settings
        tournament = Tournament(
            id=_new_id(),
            name=name,
            date=data.get('date'),
            location=data.get('location'),
            entry_fee=data.get('entry_fee', settings['default_entry_fee']),
            available_pits=data.get('available_pits', settings['default_available_pits']),
            teams=_parse_teams(data.get('teams')),
            created_at=_now(),
        )
        store.tournaments.append(tournament)
    app.logger.info(f'Created tournament {tournament.name} with {len(tournament.teams)} teams')
    return jsonify({'success': True, 'tournament': tournament.to_dict()}), 201


@app.route('/api/tournaments/<tournament_id>', methods=['PATCH'])
def api_update_tournament(tournament_id):
    """Update status, pits, entry fee or team list of a tournament."""
    data = _require_json()
    with get_store().transaction() as store:
        tournament = store.get_tournament(tournament_id)
        if 'status' in data:
            if data['status'] not in TOURNAMENT_STATUSES:
                raise PreconditionError(f"Unknown tournament status: {data['status']}")
            tournament.status = data['status']
        if 'name' in data:
            tournament.name = data['name'] or tournament.name
        if 'entry_fee' in data:
            tournament.entry_fee = data['entry_fee']
        if 'teams' in data:
            if store.tournament_matches(tournament_id) or tournament.bracket_state:
                raise PreconditionError('Reset the tournament before changing its teams')
            tournament.teams = _parse_teams(data['teams'])
        if 'available_pits' in data:
            tournament.available_pits = int(data['available_pits'] or 0)
            _reassign_after_change(store, tournament)
    return jsonify({'success': True, 'tournament': tournament.to_dict()})


@app.route('/api/tournaments/<tournament_id>', methods=['DELETE'])
def api_delete_tournament(tournament_id):
    """Delete a tournament together with all of its matches."""
    with get_store().transaction() as store:
        tournament = store.get_tournament(tournament_id)
        deleted = store.delete_tournament_matches(tournament.id)
        store.tournaments = [t for t in store.tournaments if t.id != tournament.id]
    app.logger.info(f'Deleted tournament {tournament.name} and {deleted} matches')
    return jsonify({'success': True, 'deleted': deleted})


@app.route('/api/tournaments/<tournament_id>/round-robin', methods=['POST'])
def api_generate_round_robin(tournament_id):
    """Generate the round robin schedule. Pass force=true to replace an existing one."""
    data = request.get_json(silent=True) or {}
    force = bool(data.get('force', False))

    with get_store().transaction() as store:
        tournament = store.get_tournament(tournament_id)
        schedule = generate_round_robin(
            tournament.id,
            tournament.teams,
            available_pits=tournament.available_pits,
            existing_matches=store.matches,
            force_regenerate=force,
        )
        if schedule is None:
            return jsonify({
                'success': False,
                'generated': False,
                'message': 'Matches already exist for this tournament. Use force to regenerate.'
            })
        store.replace_tournament_matches(tournament.id, schedule.superseded_match_ids, schedule.matches)
        if tournament.status == 'setup':
            tournament.status = 'active'

    return jsonify({
        'success': True,
        'generated': True,
        'double_round_robin': schedule.double_round_robin,
        'target_points': schedule.target_points,
        'total_rounds': schedule.total_rounds,
        'deleted': len(schedule.superseded_match_ids),
        'matches': [m.to_dict() for m in schedule.matches],
    })


@app.route('/api/tournaments/<tournament_id>/bracket', methods=['GET'])
def api_get_bracket(tournament_id):
    store = get_store().load()
    tournament = store.get_tournament(tournament_id)
    if tournament.bracket_state is None:
        return jsonify({'bracket': None})
    champion = get_champion(tournament.bracket_state)
    return jsonify({
        'bracket': tournament.bracket_state.to_dict(),
        'champion': champion.to_dict() if champion else None,
    })


@app.route('/api/tournaments/<tournament_id>/bracket', methods=['POST'])
def api_generate_bracket(tournament_id):
    """Generate the double elimination bracket, or reseed it with force=true.

    Reseeding replaces the bracket and deletes the tournament's match history.
    """
    data = request.get_json(silent=True) or {}
    force = bool(data.get('force', False))

    with get_store().transaction() as store:
        tournament = store.get_tournament(tournament_id)
        if tournament.bracket_state is not None and not force:
            return jsonify({
                'success': False,
                'generated': False,
                'message': 'Bracket already exists. Use force to reseed.'
            })
        players = {p.id: p for p in store.players}
        bracket = generate_bracket(seed_bracket_teams(tournament.teams, players))
        deleted = store.delete_tournament_matches(tournament.id)
        tournament.bracket_state = bracket
        if tournament.status == 'setup':
            tournament.status = 'active'

    if deleted:
        app.logger.info(f'Reseeded bracket for {tournament.name}, cleared {deleted} matches')
    return jsonify({'success': True, 'generated': True, 'deleted': deleted, 'bracket': bracket.to_dict()})


@app.route('/api/tournaments/<tournament_id>/bracket/advance', methods=['POST'])
def api_advance_bracket(tournament_id):
    """Record a bracket result and mirror it into the match history."""
    data = _require_json()
    match_id = data.get('match_id')
    winner_id = data.get('winner_id')
    if not match_id or not winner_id:
        return jsonify({'error': 'match_id and winner_id are required'}), 400
    try:
        team1_score = int(data.get('team1_score'))
        team2_score = int(data.get('team2_score'))
    except (TypeError, ValueError):
        return jsonify({'error': 'Both scores must be whole numbers'}), 400

    with get_store().transaction() as store:
        tournament = store.get_tournament(tournament_id)
        if tournament.bracket_state is None:
            raise PreconditionError('This tournament has no bracket')
        validate_bracket(tournament.bracket_state)

        match = tournament.bracket_state.find_match(match_id)
        if not (match.team1.is_scheduled and match.team2.is_scheduled):
            raise PreconditionError(f'Match {match_id} is still waiting for its teams')
        loser_id = data.get('loser_id') or (
            match.team2.team.id if match.team1.team.id == winner_id else match.team1.team.id
        )

        bracket = advance_winner(tournament.bracket_state, match_id, winner_id, loser_id,
                                 team1_score, team2_score)
        tournament.bracket_state = bracket
        league_match = league_match_from_bracket_result(
            tournament.id, bracket.find_match(match_id), created_at=_now()
        )
        store.matches.append(league_match)
        champion = get_champion(bracket)

    return jsonify({
        'success': True,
        'match': league_match.to_dict(),
        'champion': champion.to_dict() if champion else None,
        'bracket': bracket.to_dict(),
    })


@app.route('/api/tournaments/<tournament_id>/reset', methods=['POST'])
def api_reset_tournament(tournament_id):
    """Delete every match of a tournament and drop its bracket state."""
    with get_store().transaction() as store:
        tournament = store.get_tournament(tournament_id)
        deleted = store.delete_tournament_matches(tournament.id)
        tournament.bracket_state = None
    app.logger.info(f'Reset tournament {tournament.name}: {deleted} matches deleted')
    return jsonify({'success': True, 'deleted': deleted})


@app.route('/api/tournaments/<tournament_id>/pits/reassign', methods=['POST'])
def api_reassign_pits(tournament_id):
    with get_store().transaction() as store:
        tournament = store.get_tournament(tournament_id)
        patches = _reassign_after_change(store, tournament)
    return jsonify({'success': True, 'changes': patches})


@app.route('/api/matches/<match_id>', methods=['PATCH'])
def api_update_match(match_id):
    """Update a match's scores, ringers, pit or status.

    A match on a pit must have it to itself, so starting a match or moving an
    in-progress match checks the pit is free. Status changes and pit moves
    re-run pit assignment for the tournament.

    Bracket results are read only here; they change through the bracket
    routes.
    """
    data = _require_json()
    updates = {}
    for field in ('team1_score', 'team2_score', 'team1_ringers', 'team2_ringers'):
        if field in data:
            try:
                updates[field] = int(data[field] or 0)
            except (TypeError, ValueError):
                return jsonify({'error': f'{field} must be a whole number'}), 400
    if 'pit_number' in data and data['pit_number'] is not None:
        try:
            updates['pit_number'] = int(data['pit_number'])
        except (TypeError, ValueError):
            return jsonify({'error': 'pit_number must be a whole number'}), 400
        if updates['pit_number'] < 1:
            return jsonify({'error': 'pit_number must be 1 or more'}), 400
    elif 'pit_number' in data:
        updates['pit_number'] = None

    with get_store().transaction() as store:
        match = store.get_match(match_id)
        tournament = store.get_tournament(match.tournament_id)
        previous_status = match.status

        if match.bracket_match_id and (
                'status' in data or any(f in updates for f in BRACKET_RESULT_FIELDS)):
            raise PreconditionError(
                f'Match {match.id} mirrors bracket match {match.bracket_match_id}; '
                'change it through the bracket'
            )
        pit_number = updates.get('pit_number')
        if pit_number is not None and tournament.available_pits and pit_number > tournament.available_pits:
            raise PreconditionError(
                f'Pit {pit_number} does not exist, the tournament has {tournament.available_pits} pits'
            )

        for field, value in updates.items():
            setattr(match, field, value)

        status = data.get('status', match.status)
        if status not in MATCH_STATUSES:
            raise PreconditionError(f'Unknown match status: {status}')
        pit_moved = 'pit_number' in updates
        if status == 'in_progress' and (previous_status != 'in_progress' or pit_moved):
            ensure_pit_free(store.matches, match.id, match.pit_number)
        if status == 'completed':
            if match.team1_score == match.team2_score:
                raise PreconditionError('A completed match cannot be tied')
            match.winner_team_id = match.team1_id if match.team1_score > match.team2_score else match.team2_id
        match.status = status

        patches = []
        if status != previous_status or (pit_moved and status == 'in_progress'):
            patches = _reassign_after_change(store, tournament)
        match = store.get_match(match_id)

    return jsonify({'success': True, 'match': match.to_dict(), 'pit_changes': patches})


@app.route('/api/tournaments/<tournament_id>/matches', methods=['POST'])
def api_add_match(tournament_id):
    """Create a match by hand between two teams of the tournament."""
    data = _require_json()
    team1_id = data.get('team1_id')
    team2_id = data.get('team2_id')
    if not team1_id or not team2_id:
        return jsonify({'error': 'team1_id and team2_id are required'}), 400
    if team1_id == team2_id:
        return jsonify({'error': 'A team cannot play itself'}), 400

    with get_store().transaction() as store:
        tournament = store.get_tournament(tournament_id)
        tournament.find_team(team1_id)
        tournament.find_team(team2_id)
        match = LeagueMatch(
            id=f'{tournament.id}-m-{_new_id()}',
            tournament_id=tournament.id,
            team1_id=team1_id,
            team2_id=team2_id,
            status='pending',
            round=data.get('round') or len(store.tournament_matches(tournament.id)) + 1,
            target_points=data.get('target_points'),
            created_at=_now(),
        )
        store.matches.append(match)
        _reassign_after_change(store, tournament)
        match = store.get_match(match.id)

    return jsonify({'success': True, 'match': match.to_dict()}), 201


@app.route('/api/matches/<match_id>', methods=['DELETE'])
def api_delete_match(match_id):
    """Delete a match and hand its pit to the next match in the queue."""
    with get_store().transaction() as store:
        match = store.get_match(match_id)
        if match.bracket_match_id:
            raise PreconditionError(
                f'Match {match.id} mirrors bracket match {match.bracket_match_id}; reset the bracket instead'
            )
        tournament = store.get_tournament(match.tournament_id)
        store.matches = [m for m in store.matches if m.id != match.id]
        patches = _reassign_after_change(store, tournament)
    return jsonify({'success': True, 'pit_changes': patches})


@app.route('/api/tournaments/<tournament_id>/stats', methods=['GET'])
def api_tournament_stats(tournament_id):
    """Team stats, placements (provisional while active) and payouts."""
    store = get_store().load()
    tournament = store.get_tournament(tournament_id)
    team_stats = compute_team_stats(tournament, store.matches)
    placements = infer_placements(tournament, store.matches)
    return jsonify({
        'format': 'double_elimination' if is_double_elimination(tournament) else 'round_robin',
        'provisional': tournament.status != 'completed',
        'team_stats': [s.to_dict() for s in team_stats],
        'placements': [team.id if team else None for team in placements],
        'payouts': calculate_payouts(tournament, placements),
    })


# ---------------------------------------------------------------- seasons

@app.route('/api/standings', methods=['GET'])
def api_standings():
    """Season standings, optionally filtered by ?class=A or ?class=B."""
    class_filter = request.args.get('class')
    if class_filter and class_filter not in ('A', 'B'):
        return jsonify({'error': 'Class must be A or B'}), 400
    store = get_store().load()
    standings = compute_season_standings(store.players, store.tournaments, store.matches, class_filter)
    return jsonify({'standings': [s.to_dict() for s in standings]})


@app.route('/api/past-seasons', methods=['GET'])
def api_past_seasons():
    store = get_store().load()
    return jsonify({'past_seasons': [s.to_dict() for s in store.past_seasons]})


@app.route('/api/season/reset', methods=['POST'])
def api_reset_season():
    """Archive the current standings and start a new season."""
    data = _require_json()
    name = (data.get('name') or '').strip()
    if not name:
        return jsonify({'error': 'Season name is required'}), 400

    with get_store().transaction() as store:
        archived = archive_season(name, store.players, store.tournaments, store.matches)
        store.players = archived['players']
        store.tournaments = archived['tournaments']
        store.matches = archived['matches']
        store.past_seasons.insert(0, archived['past_season'])

    app.logger.info(f'Season {name} archived')
    return jsonify({'success': True, 'past_season': archived['past_season'].to_dict()})


if __name__ == '__main__':
    app.run(debug=True)

"""
Tests for the Flask JSON API.
"""

from league.store import LeagueStore


def add_players(client, count):
    ids = []
    for i in range(1, count + 1):
        response = client.post('/api/players', json={
            'name': f'Player {i}', 'player_class': 'A' if i % 2 else 'B'
        })
        ids.append(response.get_json()['player']['id'])
    return ids


def create_tournament(client, num_teams, **extra):
    player_ids = add_players(client, num_teams * 2)
    teams = [
        {'id': f't{i + 1}', 'player1_id': player_ids[2 * i], 'player2_id': player_ids[2 * i + 1],
         'name': f'Team {i + 1}', 'seed': i + 1}
        for i in range(num_teams)
    ]
    payload = {'name': 'Spring Pitch', 'date': '2026-05-02', 'teams': teams}
    payload.update(extra)
    response = client.post('/api/tournaments', json=payload)
    assert response.status_code == 201
    return response.get_json()['tournament']['id']


class TestPlayers:
    """Tests for player routes."""

    def test_add_and_list(self, client, temp_data_dir):
        response = client.post('/api/players', json={'name': 'Ann', 'player_class': 'A'})
        assert response.status_code == 201
        players = client.get('/api/players').get_json()['players']
        assert [p['name'] for p in players] == ['Ann']
        assert players[0]['player_class'] == 'A'

    def test_name_required(self, client, temp_data_dir):
        response = client.post('/api/players', json={'name': '  '})
        assert response.status_code == 400
        assert 'error' in response.get_json()

    def test_invalid_class(self, client, temp_data_dir):
        response = client.post('/api/players', json={'name': 'Ann', 'player_class': 'C'})
        assert response.status_code == 400

    def test_body_must_be_json(self, client, temp_data_dir):
        response = client.post('/api/players', data='name=Ann')
        assert response.status_code == 400

    def test_update_custom_points(self, client, temp_data_dir):
        player_id = client.post('/api/players', json={'name': 'Ann'}).get_json()['player']['id']
        response = client.patch(f'/api/players/{player_id}', json={'custom_season_points': 12})
        assert response.get_json()['player']['custom_season_points'] == 12

    def test_update_unknown_player(self, client, temp_data_dir):
        response = client.patch('/api/players/missing', json={'name': 'Bob'})
        assert response.status_code == 404


class TestTournaments:
    """Tests for tournament routes."""

    def test_create_uses_settings_defaults(self, client, temp_data_dir):
        tournament_id = create_tournament(client, 4)
        tournament = client.get('/api/tournaments').get_json()['tournaments'][0]
        assert tournament['id'] == tournament_id
        assert tournament['available_pits'] == 4
        assert tournament['entry_fee'] == 10
        assert tournament['status'] == 'setup'

    def test_team_needs_two_players(self, client, temp_data_dir):
        response = client.post('/api/tournaments', json={
            'name': 'Open', 'teams': [{'player1_id': 'a'}]
        })
        assert response.status_code == 400

    def test_unknown_status(self, client, temp_data_dir):
        tournament_id = create_tournament(client, 4)
        response = client.patch(f'/api/tournaments/{tournament_id}', json={'status': 'paused'})
        assert response.status_code == 400


class TestRoundRobinRoutes:
    """Tests for round robin generation and match updates."""

    def test_generate(self, client, temp_data_dir):
        tournament_id = create_tournament(client, 4, available_pits=2)
        data = client.post(f'/api/tournaments/{tournament_id}/round-robin').get_json()
        assert data['generated']
        assert data['double_round_robin']
        assert data['total_rounds'] == 6
        assert len(data['matches']) == 12

        store = LeagueStore(temp_data_dir).load()
        assert len(store.matches) == 12
        assert store.get_tournament(tournament_id).status == 'active'

    def test_second_generation_needs_force(self, client, temp_data_dir):
        tournament_id = create_tournament(client, 4)
        client.post(f'/api/tournaments/{tournament_id}/round-robin')
        data = client.post(f'/api/tournaments/{tournament_id}/round-robin').get_json()
        assert data['generated'] is False

        data = client.post(f'/api/tournaments/{tournament_id}/round-robin', json={'force': True}).get_json()
        assert data['generated']
        assert data['deleted'] == 12
        assert len(LeagueStore(temp_data_dir).load().matches) == 12

    def test_too_many_teams(self, client, temp_data_dir):
        tournament_id = create_tournament(client, 9)
        response = client.post(f'/api/tournaments/{tournament_id}/round-robin')
        assert response.status_code == 400

    def test_completing_a_match_frees_its_pit(self, client, temp_data_dir):
        tournament_id = create_tournament(client, 4, available_pits=2)
        matches = client.post(f'/api/tournaments/{tournament_id}/round-robin').get_json()['matches']
        first = matches[0]['id']

        response = client.patch(f'/api/matches/{first}', json={'status': 'in_progress'})
        assert response.status_code == 200

        response = client.patch(f'/api/matches/{first}', json={
            'status': 'completed', 'team1_score': 30, 'team2_score': 18, 'team1_ringers': 5
        })
        data = response.get_json()
        assert data['match']['winner_team_id'] == 't1'

        store = LeagueStore(temp_data_dir).load()
        pending = [m for m in store.matches if m.status == 'pending']
        assert [m.pit_number for m in pending[:2]] == [1, 2]
        assert all(m.pit_number is None for m in pending[2:])

    def test_busy_pit_rejected(self, client, temp_data_dir):
        tournament_id = create_tournament(client, 4, available_pits=1)
        matches = client.post(f'/api/tournaments/{tournament_id}/round-robin').get_json()['matches']
        client.patch(f"/api/matches/{matches[0]['id']}", json={'status': 'in_progress'})
        response = client.patch(f"/api/matches/{matches[1]['id']}", json={
            'status': 'in_progress', 'pit_number': 1
        })
        assert response.status_code == 400
        assert 'Pit 1' in response.get_json()['error']

    def test_tied_result_rejected(self, client, temp_data_dir):
        tournament_id = create_tournament(client, 4)
        matches = client.post(f'/api/tournaments/{tournament_id}/round-robin').get_json()['matches']
        response = client.patch(f"/api/matches/{matches[0]['id']}", json={
            'status': 'completed', 'team1_score': 21, 'team2_score': 21
        })
        assert response.status_code == 400
        assert LeagueStore(temp_data_dir).load().get_match(matches[0]['id']).status == 'pending'

    def test_unknown_match(self, client, temp_data_dir):
        response = client.patch('/api/matches/missing', json={'status': 'completed'})
        assert response.status_code == 404

    def test_reset(self, client, temp_data_dir):
        tournament_id = create_tournament(client, 4)
        client.post(f'/api/tournaments/{tournament_id}/round-robin')
        data = client.post(f'/api/tournaments/{tournament_id}/reset').get_json()
        assert data['deleted'] == 12
        assert LeagueStore(temp_data_dir).load().matches == []

    def test_moving_in_progress_match_onto_busy_pit_rejected(self, client, temp_data_dir):
        tournament_id = create_tournament(client, 4, available_pits=2)
        matches = client.post(f'/api/tournaments/{tournament_id}/round-robin').get_json()['matches']
        first, second = matches[0]['id'], matches[1]['id']
        client.patch(f'/api/matches/{first}', json={'status': 'in_progress'})
        client.patch(f'/api/matches/{second}', json={'status': 'in_progress'})

        response = client.patch(f'/api/matches/{second}', json={'pit_number': 1})
        assert response.status_code == 400
        assert 'Pit 1' in response.get_json()['error']
        assert LeagueStore(temp_data_dir).load().get_match(second).pit_number == 2

    def test_moving_in_progress_match_to_free_pit(self, client, temp_data_dir):
        tournament_id = create_tournament(client, 4, available_pits=3)
        matches = client.post(f'/api/tournaments/{tournament_id}/round-robin').get_json()['matches']
        first = matches[0]['id']
        client.patch(f'/api/matches/{first}', json={'status': 'in_progress'})

        response = client.patch(f'/api/matches/{first}', json={'pit_number': 3})
        assert response.status_code == 200
        store = LeagueStore(temp_data_dir).load()
        assert store.get_match(first).pit_number == 3
        assert store.get_match(matches[1]['id']).pit_number == 1
        in_progress = [m.pit_number for m in store.matches if m.status == 'in_progress']
        assert in_progress == [3]

    def test_pit_beyond_available_rejected(self, client, temp_data_dir):
        tournament_id = create_tournament(client, 4, available_pits=2)
        matches = client.post(f'/api/tournaments/{tournament_id}/round-robin').get_json()['matches']
        response = client.patch(f"/api/matches/{matches[0]['id']}", json={'pit_number': 5})
        assert response.status_code == 400

    def test_non_numeric_values_rejected(self, client, temp_data_dir):
        tournament_id = create_tournament(client, 4)
        matches = client.post(f'/api/tournaments/{tournament_id}/round-robin').get_json()['matches']
        match_id = matches[0]['id']

        response = client.patch(f'/api/matches/{match_id}', json={'team1_score': 'abc'})
        assert response.status_code == 400
        assert 'team1_score' in response.get_json()['error']

        response = client.patch(f'/api/matches/{match_id}', json={'pit_number': 'two'})
        assert response.status_code == 400

        match = LeagueStore(temp_data_dir).load().get_match(match_id)
        assert match.team1_score == 0
        assert match.pit_number == 1

    def test_delete_match_hands_pit_on(self, client, temp_data_dir):
        tournament_id = create_tournament(client, 4, available_pits=1)
        matches = client.post(f'/api/tournaments/{tournament_id}/round-robin').get_json()['matches']
        client.patch(f"/api/matches/{matches[0]['id']}", json={'status': 'in_progress'})
        assert LeagueStore(temp_data_dir).load().get_match(matches[1]['id']).pit_number is None

        response = client.delete(f"/api/matches/{matches[0]['id']}")
        assert response.status_code == 200
        assert response.get_json()['pit_changes'] == [{'match_id': matches[1]['id'], 'pit_number': 1}]
        store = LeagueStore(temp_data_dir).load()
        assert len(store.matches) == 11
        assert store.get_match(matches[1]['id']).pit_number == 1

    def test_delete_unknown_match(self, client, temp_data_dir):
        assert client.delete('/api/matches/missing').status_code == 404


class TestManualMatches:
    """Tests for creating matches by hand."""

    def test_add_match(self, client, temp_data_dir):
        tournament_id = create_tournament(client, 4, available_pits=2)
        response = client.post(f'/api/tournaments/{tournament_id}/matches', json={
            'team1_id': 't1', 'team2_id': 't3', 'target_points': 21
        })
        assert response.status_code == 201
        match = response.get_json()['match']
        assert match['status'] == 'pending'
        assert match['round'] == 1
        assert match['pit_number'] == 1
        assert match['target_points'] == 21

        second = client.post(f'/api/tournaments/{tournament_id}/matches', json={
            'team1_id': 't2', 'team2_id': 't4'
        }).get_json()['match']
        assert second['round'] == 2
        assert second['pit_number'] == 2

    def test_team_must_be_entered(self, client, temp_data_dir):
        tournament_id = create_tournament(client, 4)
        response = client.post(f'/api/tournaments/{tournament_id}/matches', json={
            'team1_id': 't1', 'team2_id': 't9'
        })
        assert response.status_code == 404
        assert LeagueStore(temp_data_dir).load().matches == []

    def test_team_cannot_play_itself(self, client, temp_data_dir):
        tournament_id = create_tournament(client, 4)
        response = client.post(f'/api/tournaments/{tournament_id}/matches', json={
            'team1_id': 't1', 'team2_id': 't1'
        })
        assert response.status_code == 400


class TestDeletes:
    """Tests for deleting players and tournaments."""

    def test_delete_tournament_removes_its_matches(self, client, temp_data_dir):
        tournament_id = create_tournament(client, 4)
        other_id = create_tournament(client, 4)
        client.post(f'/api/tournaments/{tournament_id}/round-robin')
        client.post(f'/api/tournaments/{other_id}/round-robin')

        response = client.delete(f'/api/tournaments/{tournament_id}')
        assert response.get_json()['deleted'] == 12
        store = LeagueStore(temp_data_dir).load()
        assert [t.id for t in store.tournaments] == [other_id]
        assert all(m.tournament_id == other_id for m in store.matches)
        assert client.delete(f'/api/tournaments/{tournament_id}').status_code == 404

    def test_delete_free_player(self, client, temp_data_dir):
        player_id = client.post('/api/players', json={'name': 'Ann'}).get_json()['player']['id']
        assert client.delete(f'/api/players/{player_id}').status_code == 200
        assert client.get('/api/players').get_json()['players'] == []

    def test_player_on_a_team_cannot_be_deleted(self, client, temp_data_dir):
        create_tournament(client, 4)
        player_id = client.get('/api/players').get_json()['players'][0]['id']
        response = client.delete(f'/api/players/{player_id}')
        assert response.status_code == 400
        assert 'Spring Pitch' in response.get_json()['error']

    def test_delete_unknown_player(self, client, temp_data_dir):
        assert client.delete('/api/players/missing').status_code == 404


class TestBracketRoutes:
    """Tests for double elimination routes."""

    def test_generate_and_advance(self, client, temp_data_dir):
        tournament_id = create_tournament(client, 10)
        data = client.post(f'/api/tournaments/{tournament_id}/bracket').get_json()
        assert data['generated']
        assert data['bracket']['field_size'] == 16

        response = client.post(f'/api/tournaments/{tournament_id}/bracket/advance', json={
            'match_id': 'W1-M2', 'winner_id': 't9', 'team1_score': 12, 'team2_score': 21
        })
        assert response.status_code == 200
        data = response.get_json()
        assert data['match']['id'] == f'{tournament_id}-W1-M2'
        assert data['match']['winner_team_id'] == 't9'
        assert data['champion'] is None

        store = LeagueStore(temp_data_dir).load()
        assert [m.bracket_match_id for m in store.matches] == ['W1-M2']
        bracket = store.get_tournament(tournament_id).bracket_state
        assert bracket.find_match('W2-M1').team2.team.id == 't9'

    def test_tie_rejected(self, client, temp_data_dir):
        tournament_id = create_tournament(client, 10)
        client.post(f'/api/tournaments/{tournament_id}/bracket')
        response = client.post(f'/api/tournaments/{tournament_id}/bracket/advance', json={
            'match_id': 'W1-M2', 'winner_id': 't9', 'team1_score': 21, 'team2_score': 21
        })
        assert response.status_code == 400
        store = LeagueStore(temp_data_dir).load()
        assert store.matches == []
        assert store.get_tournament(tournament_id).bracket_state.find_match('W1-M2').status == 'pending'

    def test_scores_must_be_numbers(self, client, temp_data_dir):
        tournament_id = create_tournament(client, 10)
        client.post(f'/api/tournaments/{tournament_id}/bracket')
        response = client.post(f'/api/tournaments/{tournament_id}/bracket/advance', json={
            'match_id': 'W1-M2', 'winner_id': 't9', 'team1_score': 'x', 'team2_score': 21
        })
        assert response.status_code == 400

    def test_unknown_bracket_match(self, client, temp_data_dir):
        tournament_id = create_tournament(client, 10)
        client.post(f'/api/tournaments/{tournament_id}/bracket')
        response = client.post(f'/api/tournaments/{tournament_id}/bracket/advance', json={
            'match_id': 'W7-M1', 'winner_id': 't9', 'team1_score': 1, 'team2_score': 21
        })
        assert response.status_code == 404

    def test_too_few_teams(self, client, temp_data_dir):
        tournament_id = create_tournament(client, 8)
        response = client.post(f'/api/tournaments/{tournament_id}/bracket')
        assert response.status_code == 400

    def test_reseed_needs_force_and_clears_history(self, client, temp_data_dir):
        tournament_id = create_tournament(client, 10)
        client.post(f'/api/tournaments/{tournament_id}/bracket')
        client.post(f'/api/tournaments/{tournament_id}/bracket/advance', json={
            'match_id': 'W1-M2', 'winner_id': 't8', 'team1_score': 21, 'team2_score': 3
        })
        assert client.post(f'/api/tournaments/{tournament_id}/bracket').get_json()['generated'] is False

        data = client.post(f'/api/tournaments/{tournament_id}/bracket', json={'force': True}).get_json()
        assert data['deleted'] == 1
        assert LeagueStore(temp_data_dir).load().matches == []

    def test_mirrored_result_is_read_only(self, client, temp_data_dir):
        tournament_id = create_tournament(client, 10)
        client.post(f'/api/tournaments/{tournament_id}/bracket')
        client.post(f'/api/tournaments/{tournament_id}/bracket/advance', json={
            'match_id': 'W1-M2', 'winner_id': 't9', 'team1_score': 12, 'team2_score': 21
        })
        mirrored_id = f'{tournament_id}-W1-M2'

        response = client.patch(f'/api/matches/{mirrored_id}', json={'team1_score': 21, 'team2_score': 0})
        assert response.status_code == 400
        response = client.patch(f'/api/matches/{mirrored_id}', json={'status': 'pending'})
        assert response.status_code == 400
        assert client.delete(f'/api/matches/{mirrored_id}').status_code == 400

        match = LeagueStore(temp_data_dir).load().get_match(mirrored_id)
        assert match.winner_team_id == 't9'
        assert (match.team1_score, match.team2_score) == (12, 21)

        response = client.patch(f'/api/matches/{mirrored_id}', json={'team2_ringers': 4})
        assert response.status_code == 200

    def test_corrupt_bracket_is_server_error(self, client, temp_data_dir):
        tournament_id = create_tournament(client, 10)
        client.post(f'/api/tournaments/{tournament_id}/bracket')
        with LeagueStore(temp_data_dir).transaction() as store:
            store.get_tournament(tournament_id).bracket_state.losers_rounds[0].matches.pop()
        response = client.post(f'/api/tournaments/{tournament_id}/bracket/advance', json={
            'match_id': 'W1-M2', 'winner_id': 't8', 'team1_score': 21, 'team2_score': 3
        })
        assert response.status_code == 500


class TestSeasonRoutes:
    """Tests for stats, standings and season archiving."""

    def _play_round_robin(self, client, tournament_id):
        """Lower team number wins every match."""
        matches = client.post(f'/api/tournaments/{tournament_id}/round-robin').get_json()['matches']
        for match in matches:
            team1_wins = int(match['team1_id'][1:]) < int(match['team2_id'][1:])
            client.patch(f"/api/matches/{match['id']}", json={
                'status': 'completed',
                'team1_score': 30 if team1_wins else 10,
                'team2_score': 10 if team1_wins else 30,
            })
        client.patch(f'/api/tournaments/{tournament_id}', json={'status': 'completed'})

    def test_stats_and_payouts(self, client, temp_data_dir):
        tournament_id = create_tournament(client, 4, entry_fee=5)
        self._play_round_robin(client, tournament_id)

        data = client.get(f'/api/tournaments/{tournament_id}/stats').get_json()
        assert data['format'] == 'round_robin'
        assert data['provisional'] is False
        assert [s['team_id'] for s in data['team_stats']] == ['t1', 't2', 't3', 't4']
        assert data['team_stats'][0]['wins'] == 6
        assert data['placements'] == ['t1', 't2', 't3']
        assert data['payouts'][0] == {'place': 1, 'team_id': 't1', 'team_payout': 20.0, 'player_payout': 10.0}

    def test_standings_and_class_filter(self, client, temp_data_dir):
        tournament_id = create_tournament(client, 4)
        self._play_round_robin(client, tournament_id)

        standings = client.get('/api/standings').get_json()['standings']
        assert len(standings) == 8
        assert standings[0]['points'] == 11

        class_a = client.get('/api/standings?class=A').get_json()['standings']
        assert len(class_a) == 4
        assert client.get('/api/standings?class=Z').status_code == 400

    def test_reset_season(self, client, temp_data_dir):
        tournament_id = create_tournament(client, 4)
        self._play_round_robin(client, tournament_id)

        response = client.post('/api/season/reset', json={'name': '2026 Season'})
        assert response.status_code == 200
        past = client.get('/api/past-seasons').get_json()['past_seasons']
        assert [s['name'] for s in past] == ['2026 Season']
        assert len(past[0]['class_a_standings']) == 4
        assert client.get('/api/tournaments').get_json()['tournaments'] == []
        assert client.get('/api/standings').get_json()['standings'] == []

    def test_reset_season_needs_name(self, client, temp_data_dir):
        assert client.post('/api/season/reset', json={}).status_code == 400

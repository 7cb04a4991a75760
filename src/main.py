# Command line entry point for the horseshoe league engine

import argparse
import logging
import sys
import yaml
from league.errors import LeagueError
from league.models import Team
from league.round_robin import generate_round_robin
from league.double_elimination import seed_bracket_teams, generate_bracket
from league.standings import compute_season_standings
from league.store import LeagueStore


def load_teams(file_path):
    """Load teams from a YAML file.

    The file holds a ``teams`` list. An entry is either a team name or a
    mapping with id, name, player1_id, player2_id and seed.
    """
    with open(file_path, mode='r', encoding='utf-8') as file:
        data = yaml.safe_load(file) or {}

    teams = []
    for position, entry in enumerate(data.get('teams') or [], start=1):
        if isinstance(entry, str):
            entry = {'name': entry}
        team_id = str(entry.get('id') or f"team-{position}")
        teams.append(Team(
            id=team_id,
            player1_id=entry.get('player1_id', f"{team_id}-p1"),
            player2_id=entry.get('player2_id', f"{team_id}-p2"),
            name=entry.get('name') or team_id,
            seed=entry.get('seed', position),
        ))
    return teams


def print_round_robin(teams, pits):
    schedule = generate_round_robin('cli', teams, available_pits=pits)
    names = {team.id: team.display_name() for team in teams}
    kind = 'Double' if schedule.double_round_robin else 'Single'
    print(f"\n--- {kind} Round Robin: {len(teams)} teams, games to {schedule.target_points} ---")
    current_round = None
    for match in schedule.matches:
        if match.round != current_round:
            current_round = match.round
            print(f"\nRound {current_round}")
        pit = f"Pit {match.pit_number}" if match.pit_number else "On deck"
        print(f"  {pit}: {names[match.team1_id]} vs {names[match.team2_id]}")


def print_bracket(teams):
    bracket = generate_bracket(seed_bracket_teams(teams))
    print(f"\n--- Double Elimination: {len(teams)} teams, {bracket.field_size}-slot field ---")
    for rounds in (bracket.winners_rounds, bracket.losers_rounds, bracket.finals_rounds):
        for bracket_round in rounds:
            print(f"\n{bracket_round.name}")
            for match in bracket_round.matches:
                result = ' (bye)' if match.is_bye else ''
                print(f"  #{match.match_number} {match.id}: "
                      f"{match.team1.label()} vs {match.team2.label()}{result}")


def print_standings(data_dir, class_filter=None):
    store = LeagueStore(data_dir).load()
    players = {player.id: player for player in store.players}
    standings = compute_season_standings(store.players, store.tournaments, store.matches, class_filter)
    title = f"Class {class_filter}" if class_filter else "All classes"
    print(f"\n--- {store.settings['league_name']} Standings ({title}) ---")
    if not standings:
        print("No completed tournaments yet.")
        return
    for rank, entry in enumerate(standings, start=1):
        player = players[entry.player_id]
        print(f"  {rank:>2}. {player.name:<24} {entry.points:>4} pts  "
              f"{entry.first_place_finishes}/{entry.second_place_finishes}/{entry.third_place_finishes}  "
              f"({entry.tournaments_played} played)")


def build_parser():
    parser = argparse.ArgumentParser(description='Horseshoe league tournament tools')
    parser.add_argument('-v', '--verbose', action='store_true', help='Show engine log output')
    commands = parser.add_subparsers(dest='command', required=True)

    round_robin = commands.add_parser('round-robin', help='Print a round robin schedule')
    round_robin.add_argument('teams_file')
    round_robin.add_argument('--pits', type=int, default=0, help='Number of pits to assign')

    bracket = commands.add_parser('bracket', help='Print a double elimination bracket')
    bracket.add_argument('teams_file')

    standings = commands.add_parser('standings', help='Print season standings')
    standings.add_argument('data_dir')
    standings.add_argument('--class', dest='player_class', choices=['A', 'B'])
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format='%(levelname)s %(name)s: %(message)s')

    try:
        if args.command == 'round-robin':
            print_round_robin(load_teams(args.teams_file), args.pits)
        elif args.command == 'bracket':
            print_bracket(load_teams(args.teams_file))
        else:
            print_standings(args.data_dir, args.player_class)
    except LeagueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())

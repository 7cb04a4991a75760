from typing import List, Dict, Optional

from .errors import InconsistentStateError, NotFoundError


class Player:
    def __init__(self, id, name, player_class='B', has_paid_membership=False,
                 custom_season_points=None, created_at=None):
        self.id = id
        self.name = name
        self.player_class = player_class
        self.has_paid_membership = has_paid_membership
        self.custom_season_points = custom_season_points  # admin override, added on top
        self.created_at = created_at

    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'name': self.name,
            'player_class': self.player_class,
            'has_paid_membership': self.has_paid_membership,
            'custom_season_points': self.custom_season_points,
            'created_at': self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'Player':
        return cls(
            id=data['id'],
            name=data.get('name', ''),
            player_class=data.get('player_class') or 'B',
            has_paid_membership=data.get('has_paid_membership', False),
            custom_season_points=data.get('custom_season_points'),
            created_at=data.get('created_at'),
        )

    def __repr__(self):
        return f"Player(id={self.id}, name={self.name}, class={self.player_class})"


class Team:
    def __init__(self, id, player1_id, player2_id, name=None, seed=None):
        self.id = id
        self.player1_id = player1_id
        self.player2_id = player2_id
        self.name = name
        self.seed = seed

    @property
    def player_ids(self) -> List[str]:
        return [self.player1_id, self.player2_id]

    def display_name(self, players: Optional[Dict[str, Player]] = None) -> str:
        """Team name, or "Player1 & Player2" when the team was never named."""
        if self.name:
            return self.name
        players = players or {}
        p1 = players.get(self.player1_id)
        p2 = players.get(self.player2_id)
        return f"{p1.name if p1 else 'Unknown'} & {p2.name if p2 else 'Unknown'}"

    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'player1_id': self.player1_id,
            'player2_id': self.player2_id,
            'name': self.name,
            'seed': self.seed,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'Team':
        return cls(
            id=data['id'],
            player1_id=data.get('player1_id'),
            player2_id=data.get('player2_id'),
            name=data.get('name'),
            seed=data.get('seed'),
        )

    def __repr__(self):
        return f"Team(id={self.id}, players=({self.player1_id}, {self.player2_id}))"


class BracketTeam:
    def __init__(self, id, name, seed):
        self.id = id
        self.name = name
        self.seed = seed

    def to_dict(self) -> Dict:
        return {'id': self.id, 'name': self.name, 'seed': self.seed}

    @classmethod
    def from_dict(cls, data: Dict) -> 'BracketTeam':
        return cls(id=data['id'], name=data.get('name', ''), seed=data.get('seed', 0))

    def __eq__(self, other):
        return isinstance(other, BracketTeam) and self.to_dict() == other.to_dict()

    def __repr__(self):
        return f"BracketTeam(id={self.id}, name={self.name}, seed={self.seed})"


class Slot:
    """One side of a bracket match.

    EMPTY     - the feeder match has not been decided yet ("TBD")
    SCHEDULED - a team occupies the slot
    BYE       - no team will ever arrive
    """
    EMPTY = 'empty'
    SCHEDULED = 'scheduled'
    BYE = 'bye'

    def __init__(self, kind, team=None):
        if kind not in (self.EMPTY, self.SCHEDULED, self.BYE):
            raise ValueError(f"Unknown slot kind: {kind}")
        if (kind == self.SCHEDULED) != (team is not None):
            raise ValueError("Only a scheduled slot carries a team")
        self.kind = kind
        self._team = team

    @classmethod
    def empty(cls) -> 'Slot':
        return cls(cls.EMPTY)

    @classmethod
    def scheduled(cls, team: BracketTeam) -> 'Slot':
        return cls(cls.SCHEDULED, team)

    @classmethod
    def bye(cls) -> 'Slot':
        return cls(cls.BYE)

    @property
    def is_empty(self) -> bool:
        return self.kind == self.EMPTY

    @property
    def is_scheduled(self) -> bool:
        return self.kind == self.SCHEDULED

    @property
    def is_bye(self) -> bool:
        return self.kind == self.BYE

    @property
    def team(self) -> BracketTeam:
        if self.kind != self.SCHEDULED:
            raise InconsistentStateError(f"Slot is {self.kind}, it holds no team")
        return self._team

    def label(self) -> str:
        if self.is_scheduled:
            return self._team.name
        return 'BYE' if self.is_bye else 'TBD'

    def to_dict(self) -> Dict:
        return {'kind': self.kind, 'team': self._team.to_dict() if self._team else None}

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> 'Slot':
        if not data:
            return cls.empty()
        team = data.get('team')
        return cls(data.get('kind', cls.EMPTY), BracketTeam.from_dict(team) if team else None)

    def __eq__(self, other):
        return isinstance(other, Slot) and self.kind == other.kind and self._team == other._team

    def __repr__(self):
        return f"Slot({self.kind}{', ' + self._team.id if self._team else ''})"


class BracketMatch:
    def __init__(self, id, match_number, round, bracket_section, index,
                 team1=None, team2=None, team1_score=0, team2_score=0,
                 status='pending', winner_id=None, loser_id=None, is_bye=False):
        self.id = id
        self.match_number = match_number
        self.round = round
        self.bracket_section = bracket_section  # winners | losers | finals
        self.index = index  # position within its round, 0-based
        self.team1 = team1 if team1 is not None else Slot.empty()
        self.team2 = team2 if team2 is not None else Slot.empty()
        self.team1_score = team1_score
        self.team2_score = team2_score
        self.status = status
        self.winner_id = winner_id
        self.loser_id = loser_id
        self.is_bye = is_bye  # resolved without being played

    @property
    def is_completed(self) -> bool:
        return self.status == 'completed'

    @property
    def is_ready(self) -> bool:
        """Both teams known and the match not yet decided."""
        return not self.is_completed and self.team1.is_scheduled and self.team2.is_scheduled

    def slot(self, position: int) -> Slot:
        return self.team1 if position == 1 else self.team2

    def set_slot(self, position: int, slot: Slot):
        if position == 1:
            self.team1 = slot
        else:
            self.team2 = slot

    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'match_number': self.match_number,
            'round': self.round,
            'bracket_section': self.bracket_section,
            'index': self.index,
            'team1': self.team1.to_dict(),
            'team2': self.team2.to_dict(),
            'team1_score': self.team1_score,
            'team2_score': self.team2_score,
            'status': self.status,
            'winner_id': self.winner_id,
            'loser_id': self.loser_id,
            'is_bye': self.is_bye,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'BracketMatch':
        return cls(
            id=data['id'],
            match_number=data['match_number'],
            round=data['round'],
            bracket_section=data['bracket_section'],
            index=data.get('index', 0),
            team1=Slot.from_dict(data.get('team1')),
            team2=Slot.from_dict(data.get('team2')),
            team1_score=data.get('team1_score', 0),
            team2_score=data.get('team2_score', 0),
            status=data.get('status', 'pending'),
            winner_id=data.get('winner_id'),
            loser_id=data.get('loser_id'),
            is_bye=data.get('is_bye', False),
        )

    def __repr__(self):
        return (f"BracketMatch(#{self.match_number} {self.id}: {self.team1.label()} vs "
                f"{self.team2.label()}, status={self.status})")


class BracketRound:
    def __init__(self, round, bracket_section, name, matches=None):
        self.round = round
        self.bracket_section = bracket_section
        self.name = name
        self.matches = matches if matches is not None else []

    def to_dict(self) -> Dict:
        return {
            'round': self.round,
            'bracket_section': self.bracket_section,
            'name': self.name,
            'matches': [m.to_dict() for m in self.matches],
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'BracketRound':
        return cls(
            round=data['round'],
            bracket_section=data['bracket_section'],
            name=data.get('name', ''),
            matches=[BracketMatch.from_dict(m) for m in data.get('matches', [])],
        )

    def __repr__(self):
        return f"BracketRound({self.name}, matches={len(self.matches)})"


class Bracket:
    """Double elimination bracket.

    The round lists own the matches; ``all_matches`` is always derived from
    them so the flat and nested views cannot drift apart.
    """

    def __init__(self, field_size, winners_rounds, losers_rounds, finals_rounds):
        self.field_size = field_size
        self.winners_rounds = winners_rounds
        self.losers_rounds = losers_rounds
        self.finals_rounds = finals_rounds

    @property
    def all_matches(self) -> List[BracketMatch]:
        return [
            match
            for rounds in (self.winners_rounds, self.losers_rounds, self.finals_rounds)
            for bracket_round in rounds
            for match in bracket_round.matches
        ]

    def rounds_for(self, section: str) -> List[BracketRound]:
        return {
            'winners': self.winners_rounds,
            'losers': self.losers_rounds,
            'finals': self.finals_rounds,
        }[section]

    def find_match(self, match_id: str) -> BracketMatch:
        for match in self.all_matches:
            if match.id == match_id:
                return match
        raise NotFoundError(f"Unknown bracket match: {match_id}")

    def get_match(self, section: str, round_num: int, index: int) -> BracketMatch:
        """Look up a match by its topology coordinates (round is 1-based)."""
        rounds = self.rounds_for(section)
        if not 1 <= round_num <= len(rounds):
            raise InconsistentStateError(f"No {section} round {round_num} in a {self.field_size}-team field")
        matches = rounds[round_num - 1].matches
        if not 0 <= index < len(matches):
            raise InconsistentStateError(f"No match {index} in {section} round {round_num}")
        return matches[index]

    @property
    def grand_final(self) -> BracketMatch:
        return self.get_match('finals', 1, 0)

    @property
    def reset_match(self) -> BracketMatch:
        return self.get_match('finals', 2, 0)

    def to_dict(self) -> Dict:
        return {
            'field_size': self.field_size,
            'winners_rounds': [r.to_dict() for r in self.winners_rounds],
            'losers_rounds': [r.to_dict() for r in self.losers_rounds],
            'finals_rounds': [r.to_dict() for r in self.finals_rounds],
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'Bracket':
        return cls(
            field_size=data['field_size'],
            winners_rounds=[BracketRound.from_dict(r) for r in data.get('winners_rounds', [])],
            losers_rounds=[BracketRound.from_dict(r) for r in data.get('losers_rounds', [])],
            finals_rounds=[BracketRound.from_dict(r) for r in data.get('finals_rounds', [])],
        )

    def __repr__(self):
        return (f"Bracket(field_size={self.field_size}, winners={len(self.winners_rounds)}, "
                f"losers={len(self.losers_rounds)}, matches={len(self.all_matches)})")


class LeagueMatch:
    def __init__(self, id, tournament_id, team1_id, team2_id, team1_score=0, team2_score=0,
                 team1_ringers=0, team2_ringers=0, winner_team_id=None, status='pending',
                 round=1, target_points=None, pit_number=None, bracket_match_id=None,
                 created_at=None):
        self.id = id
        self.tournament_id = tournament_id
        self.team1_id = team1_id
        self.team2_id = team2_id
        self.team1_score = team1_score
        self.team2_score = team2_score
        self.team1_ringers = team1_ringers
        self.team2_ringers = team2_ringers
        self.winner_team_id = winner_team_id
        self.status = status
        self.round = round
        self.target_points = target_points
        self.pit_number = pit_number
        self.bracket_match_id = bracket_match_id
        self.created_at = created_at

    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'tournament_id': self.tournament_id,
            'team1_id': self.team1_id,
            'team2_id': self.team2_id,
            'team1_score': self.team1_score,
            'team2_score': self.team2_score,
            'team1_ringers': self.team1_ringers,
            'team2_ringers': self.team2_ringers,
            'winner_team_id': self.winner_team_id,
            'status': self.status,
            'round': self.round,
            'target_points': self.target_points,
            'pit_number': self.pit_number,
            'bracket_match_id': self.bracket_match_id,
            'created_at': self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'LeagueMatch':
        return cls(
            id=data['id'],
            tournament_id=data['tournament_id'],
            team1_id=data['team1_id'],
            team2_id=data['team2_id'],
            team1_score=data.get('team1_score', 0),
            team2_score=data.get('team2_score', 0),
            team1_ringers=data.get('team1_ringers', 0),
            team2_ringers=data.get('team2_ringers', 0),
            winner_team_id=data.get('winner_team_id'),
            status=data.get('status', 'pending'),
            round=data.get('round', 1),
            target_points=data.get('target_points'),
            pit_number=data.get('pit_number'),
            bracket_match_id=data.get('bracket_match_id'),
            created_at=data.get('created_at'),
        )

    def __repr__(self):
        return (f"LeagueMatch(id={self.id}, {self.team1_id} vs {self.team2_id}, "
                f"round={self.round}, status={self.status}, pit={self.pit_number})")


class Tournament:
    def __init__(self, id, name, date=None, location=None, entry_fee=0, available_pits=0,
                 teams=None, status='setup', bracket_state=None, created_at=None):
        self.id = id
        self.name = name
        self.date = date
        self.location = location
        self.entry_fee = entry_fee
        self.available_pits = available_pits
        self.teams = teams if teams is not None else []
        self.status = status  # setup | active | completed
        self.bracket_state = bracket_state  # Bracket or None
        self.created_at = created_at

    def find_team(self, team_id: str) -> Team:
        for team in self.teams:
            if team.id == team_id:
                return team
        raise NotFoundError(f"Team {team_id} is not in tournament {self.id}")

    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'name': self.name,
            'date': self.date,
            'location': self.location,
            'entry_fee': self.entry_fee,
            'available_pits': self.available_pits,
            'teams': [t.to_dict() for t in self.teams],
            'status': self.status,
            'bracket_state': self.bracket_state.to_dict() if self.bracket_state else None,
            'created_at': self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'Tournament':
        bracket_state = data.get('bracket_state')
        return cls(
            id=data['id'],
            name=data.get('name', ''),
            date=data.get('date'),
            location=data.get('location'),
            entry_fee=data.get('entry_fee', 0),
            available_pits=data.get('available_pits') or 0,
            teams=[Team.from_dict(t) for t in data.get('teams') or []],
            status=data.get('status', 'setup'),
            bracket_state=Bracket.from_dict(bracket_state) if bracket_state else None,
            created_at=data.get('created_at'),
        )

    def __repr__(self):
        return f"Tournament(id={self.id}, name={self.name}, teams={len(self.teams)}, status={self.status})"


class TeamStats:
    def __init__(self, team_id, wins=0, losses=0, total_points=0, total_ringers=0, matches=0):
        self.team_id = team_id
        self.wins = wins
        self.losses = losses
        self.total_points = total_points
        self.total_ringers = total_ringers
        self.matches = matches

    def to_dict(self) -> Dict:
        return {
            'team_id': self.team_id,
            'wins': self.wins,
            'losses': self.losses,
            'total_points': self.total_points,
            'total_ringers': self.total_ringers,
            'matches': self.matches,
        }

    def __repr__(self):
        return f"TeamStats(team_id={self.team_id}, {self.wins}-{self.losses})"


class PlayerSeasonStats:
    def __init__(self, player_id, points=0, tournaments_played=0, first_place_finishes=0,
                 second_place_finishes=0, third_place_finishes=0):
        self.player_id = player_id
        self.points = points
        self.tournaments_played = tournaments_played
        self.first_place_finishes = first_place_finishes
        self.second_place_finishes = second_place_finishes
        self.third_place_finishes = third_place_finishes

    def to_dict(self) -> Dict:
        return {
            'player_id': self.player_id,
            'points': self.points,
            'tournaments_played': self.tournaments_played,
            'first_place_finishes': self.first_place_finishes,
            'second_place_finishes': self.second_place_finishes,
            'third_place_finishes': self.third_place_finishes,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'PlayerSeasonStats':
        return cls(**{key: data.get(key, 0) for key in (
            'points', 'tournaments_played', 'first_place_finishes',
            'second_place_finishes', 'third_place_finishes')}, player_id=data['player_id'])

    def __eq__(self, other):
        return isinstance(other, PlayerSeasonStats) and self.to_dict() == other.to_dict()

    def __repr__(self):
        return f"PlayerSeasonStats(player_id={self.player_id}, points={self.points})"


class PastSeason:
    def __init__(self, id, name, end_date, class_a_standings=None, class_b_standings=None,
                 created_at=None):
        self.id = id
        self.name = name
        self.end_date = end_date
        self.class_a_standings = class_a_standings if class_a_standings is not None else []
        self.class_b_standings = class_b_standings if class_b_standings is not None else []
        self.created_at = created_at

    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'name': self.name,
            'end_date': self.end_date,
            'class_a_standings': [s.to_dict() for s in self.class_a_standings],
            'class_b_standings': [s.to_dict() for s in self.class_b_standings],
            'created_at': self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'PastSeason':
        return cls(
            id=data['id'],
            name=data.get('name', ''),
            end_date=data.get('end_date'),
            class_a_standings=[PlayerSeasonStats.from_dict(s) for s in data.get('class_a_standings', [])],
            class_b_standings=[PlayerSeasonStats.from_dict(s) for s in data.get('class_b_standings', [])],
            created_at=data.get('created_at'),
        )

    def __repr__(self):
        return f"PastSeason(id={self.id}, name={self.name})"

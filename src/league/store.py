"""
YAML-backed store for league data.

The store is an explicit object with a load/flush lifecycle. Nothing is saved
implicitly: callers mutate the in-memory lists and call flush(), usually
through transaction(), which holds the file lock for the whole
load -> mutate -> flush sequence.
"""
import logging
import os
from contextlib import contextmanager
from typing import Dict, List

import yaml
from filelock import FileLock

from .errors import NotFoundError
from .models import LeagueMatch, PastSeason, Player, Tournament

logger = logging.getLogger(__name__)

PLAYERS_FILE = 'players.yaml'
TOURNAMENTS_FILE = 'tournaments.yaml'
MATCHES_FILE = 'matches.yaml'
PAST_SEASONS_FILE = 'past_seasons.yaml'
SETTINGS_FILE = 'settings.yaml'


def get_default_settings() -> Dict:
    """Return default league settings."""
    return {
        'league_name': 'Horseshoe League',
        'default_available_pits': 4,
        'default_entry_fee': 10,
    }


class LeagueStore:
    def __init__(self, data_dir: str, lock_timeout: int = 10):
        self.data_dir = data_dir
        self.players: List[Player] = []
        self.tournaments: List[Tournament] = []
        self.matches: List[LeagueMatch] = []
        self.past_seasons: List[PastSeason] = []
        self.settings: Dict = get_default_settings()
        self._lock = FileLock(os.path.join(data_dir, '.lock'), timeout=lock_timeout)

    def _path(self, filename: str) -> str:
        return os.path.join(self.data_dir, filename)

    def _read(self, filename: str, key: str) -> list:
        path = self._path(filename)
        if not os.path.exists(path):
            return []
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
        if not data:
            return []
        return data.get(key) or []

    def _write(self, filename: str, key: str, items: list):
        with open(self._path(filename), 'w', encoding='utf-8') as f:
            yaml.safe_dump({key: items}, f, default_flow_style=False, sort_keys=False)

    def load(self) -> 'LeagueStore':
        """Read every collection from disk, replacing in-memory state."""
        os.makedirs(self.data_dir, exist_ok=True)
        self.players = [Player.from_dict(p) for p in self._read(PLAYERS_FILE, 'players')]
        self.tournaments = [Tournament.from_dict(t) for t in self._read(TOURNAMENTS_FILE, 'tournaments')]
        self.matches = [LeagueMatch.from_dict(m) for m in self._read(MATCHES_FILE, 'matches')]
        self.past_seasons = [PastSeason.from_dict(s) for s in self._read(PAST_SEASONS_FILE, 'past_seasons')]
        self.settings = self.load_settings()
        logger.debug("Loaded %d players, %d tournaments, %d matches from %s",
                     len(self.players), len(self.tournaments), len(self.matches), self.data_dir)
        return self

    def load_settings(self) -> Dict:
        """Load settings from YAML file, merging with defaults."""
        defaults = get_default_settings()
        path = self._path(SETTINGS_FILE)
        if not os.path.exists(path):
            return defaults
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
        if not data:
            return defaults
        return {**defaults, **data}

    def flush(self):
        """Write every collection back to disk."""
        os.makedirs(self.data_dir, exist_ok=True)
        self._write(PLAYERS_FILE, 'players', [p.to_dict() for p in self.players])
        self._write(TOURNAMENTS_FILE, 'tournaments', [t.to_dict() for t in self.tournaments])
        self._write(MATCHES_FILE, 'matches', [m.to_dict() for m in self.matches])
        self._write(PAST_SEASONS_FILE, 'past_seasons', [s.to_dict() for s in self.past_seasons])
        logger.debug("Flushed league data to %s", self.data_dir)

    @contextmanager
    def transaction(self):
        """Hold the data lock across load, mutation and flush.

        Nothing is written if the block raises.
        """
        os.makedirs(self.data_dir, exist_ok=True)
        with self._lock:
            self.load()
            yield self
            self.flush()

    def get_player(self, player_id: str) -> Player:
        for player in self.players:
            if player.id == player_id:
                return player
        raise NotFoundError(f"Unknown player: {player_id}")

    def get_tournament(self, tournament_id: str) -> Tournament:
        for tournament in self.tournaments:
            if tournament.id == tournament_id:
                return tournament
        raise NotFoundError(f"Unknown tournament: {tournament_id}")

    def get_match(self, match_id: str) -> LeagueMatch:
        for match in self.matches:
            if match.id == match_id:
                return match
        raise NotFoundError(f"Unknown match: {match_id}")

    def tournament_matches(self, tournament_id: str) -> List[LeagueMatch]:
        return [m for m in self.matches if m.tournament_id == tournament_id]

    def delete_tournament_matches(self, tournament_id: str) -> int:
        before = len(self.matches)
        self.matches = [m for m in self.matches if m.tournament_id != tournament_id]
        return before - len(self.matches)

    def replace_tournament_matches(self, tournament_id: str, superseded_ids: List[str],
                                   new_matches: List[LeagueMatch]):
        superseded = set(superseded_ids)
        self.matches = [
            m for m in self.matches
            if not (m.tournament_id == tournament_id and m.id in superseded)
        ] + list(new_matches)

"""
Error taxonomy for the league engine.

Every public engine function either returns new state or raises one of these.
"""


class LeagueError(Exception):
    """Base class for all league engine errors."""
    status_code = 400


class PreconditionError(LeagueError):
    """Input the director can correct: too few teams, tied score, empty slot."""
    status_code = 400


class NotFoundError(LeagueError):
    """Unknown match, team, player or tournament id."""
    status_code = 404


class InconsistentStateError(LeagueError):
    """Broken invariant inside stored state (e.g. a bracket routing failure).

    Not recoverable by the director; callers should log it and stop.
    """
    status_code = 500

import functools
import logging
import math
import unicodedata
import uuid
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)

MAX_PARTICIPANTS = 10
DRAW_VALUE = 0.5


# --------------------------------------------------------------------------- #
# Errors
# --------------------------------------------------------------------------- #
class LeagueError(Exception):
    pass


class RosterFullError(LeagueError):
    def __init__(self, limit=MAX_PARTICIPANTS):
        super().__init__(f"Roster is limited to {limit} participants")
        self.limit = limit


# --------------------------------------------------------------------------- #
# Model classes
# --------------------------------------------------------------------------- #
class Mode(str, Enum):
    SCORE = "score"
    WIN_LOSS = "win-loss"


class Outcome(Enum):
    WIN = "win"
    DRAW = "draw"
    LOSS = "loss"


class MatchStatus(Enum):
    PENDING = "pending"
    PARTIAL = "partial"
    UNCONFIRMED = "unconfirmed"
    CONFIRMED = "confirmed"


@dataclass(frozen=True)
class Participant:
    id: str
    name: str


@dataclass(frozen=True)
class MatchResult:
    score_a: float | None = None
    score_b: float | None = None

    @property
    def is_empty(self):
        return self.score_a is None and self.score_b is None


@dataclass(frozen=True)
class PointsRule:
    win: int = 3
    draw: int = 1
    loss: int = 0

    def points(self, outcome: Outcome) -> int:
        if outcome is Outcome.WIN:
            return self.win
        if outcome is Outcome.DRAW:
            return self.draw
        return self.loss


@dataclass
class Standing:
    participant: Participant
    played: int = 0
    wins: int = 0
    draws: int = 0
    losses: int = 0
    goals_for: float = 0
    goals_against: float = 0
    points: int = 0
    goal_difference: float = 0

    @property
    def name(self):
        return self.participant.name


# --------------------------------------------------------------------------- #
# Result lookup
# --------------------------------------------------------------------------- #
def lookup_result(results, p1, p2):
    """Scores of the pair as ``(p1's score, p2's score)``, or None.

    Results are stored under one direction only, so both keys are tried and a
    reverse-stored entry is swapped into the requested viewpoint.
    """
    stored = results.get((p1, p2))
    if stored is not None:
        return stored.score_a, stored.score_b
    stored = results.get((p2, p1))
    if stored is not None:
        return stored.score_b, stored.score_a
    return None


def stored_key(results, p1, p2):
    """Key under which the pair is stored, defaulting to ``(p1, p2)``."""
    if (p2, p1) in results and (p1, p2) not in results:
        return p2, p1
    return p1, p2


def is_draw(a, b, mode):
    if mode == Mode.WIN_LOSS:
        return a == DRAW_VALUE or b == DRAW_VALUE
    return a == b


def is_confirmed(results, p1, p2, mode, allow_draw) -> bool:
    scores = lookup_result(results, p1, p2)
    if scores is None:
        return False
    a, b = scores
    if a is None or b is None:
        return False
    if not allow_draw and is_draw(a, b, mode):
        return False
    return True


def match_status(results, p1, p2, mode, allow_draw) -> MatchStatus:
    scores = lookup_result(results, p1, p2)
    if scores is None or scores == (None, None):
        return MatchStatus.PENDING
    if None in scores:
        return MatchStatus.PARTIAL
    if is_confirmed(results, p1, p2, mode, allow_draw):
        return MatchStatus.CONFIRMED
    return MatchStatus.UNCONFIRMED


def outcome_for(a, b) -> Outcome:
    # win/loss values are 1, 0.5 and 0 from each side, so comparing works for both modes
    if a > b:
        return Outcome.WIN
    if a < b:
        return Outcome.LOSS
    return Outcome.DRAW


# --------------------------------------------------------------------------- #
# Standings
# --------------------------------------------------------------------------- #
def name_key(participant):
    folded = unicodedata.normalize("NFKC", participant.name).casefold()
    return folded, participant.name, participant.id


def _head_to_head(results, a, b, mode, allow_draw):
    if not is_confirmed(results, a.id, b.id, mode, allow_draw):
        return 0
    outcome = outcome_for(*lookup_result(results, a.id, b.id))
    if outcome is Outcome.WIN:
        return -1
    if outcome is Outcome.LOSS:
        return 1
    return 0


def _compare(x, y):
    if x == y:
        return 0
    return -1 if x < y else 1


def compute_standings(roster, results, mode, allow_draw, rule=PointsRule()):
    mode = Mode(mode)
    table = {p.id: Standing(participant=p) for p in roster}

    for i, p1 in enumerate(roster):
        for p2 in roster[i + 1:]:
            if not is_confirmed(results, p1.id, p2.id, mode, allow_draw):
                continue
            a, b = lookup_result(results, p1.id, p2.id)
            for me, mine, theirs in ((p1, a, b), (p2, b, a)):
                s = table[me.id]
                outcome = outcome_for(mine, theirs)
                s.played += 1
                s.points += rule.points(outcome)
                if outcome is Outcome.WIN:
                    s.wins += 1
                elif outcome is Outcome.DRAW:
                    s.draws += 1
                else:
                    s.losses += 1
                if mode == Mode.SCORE:
                    s.goals_for += mine
                    s.goals_against += theirs

    for s in table.values():
        s.goal_difference = s.goals_for - s.goals_against

    def compare(x, y):
        c = _compare(y.points, x.points)
        if c:
            return c
        if mode == Mode.SCORE:
            c = _compare(x.losses, y.losses)
            if c:
                return c
        c = _head_to_head(results, x.participant, y.participant, mode, allow_draw)
        if c:
            return c
        if mode == Mode.SCORE:
            c = (
                _compare(y.goal_difference, x.goal_difference)
                or _compare(y.goals_for, x.goals_for)
                or _compare(y.wins, x.wins)
            )
        else:
            c = _compare(y.wins, x.wins) or _compare(x.losses, y.losses)
        if c:
            return c
        return _compare(name_key(x.participant), name_key(y.participant))

    # name-ordered input keeps the result independent of roster order
    ordered = sorted(table.values(), key=lambda s: name_key(s.participant))
    standings = sorted(ordered, key=functools.cmp_to_key(compare))
    logger.debug(f"Standings recomputed for {len(standings)} participants ({mode.value})")
    return standings


def leader(standings):
    if standings and any(s.played for s in standings):
        return standings[0]
    return None


# --------------------------------------------------------------------------- #
# Roster & result editing (copy-on-write)
# --------------------------------------------------------------------------- #
def new_participant_id():
    return uuid.uuid4().hex[:8]


def add_participant(roster, name, limit=MAX_PARTICIPANTS):
    name = (name or "").strip()
    if not name:
        return tuple(roster)
    if len(roster) >= limit:
        raise RosterFullError(limit)
    return tuple(roster) + (Participant(new_participant_id(), name),)


def remove_participant(roster, results, participant_id):
    roster = tuple(p for p in roster if p.id != participant_id)
    results = {k: v for k, v in results.items() if participant_id not in k}
    return roster, results


def duplicate_names(roster):
    seen, dupes = set(), set()
    for p in roster:
        key = p.name.strip().casefold()
        if key in seen:
            dupes.add(p.name.strip())
        seen.add(key)
    return dupes


def parse_score(raw):
    """Normalize raw score input; anything unusable becomes None."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, str):
        raw = raw.strip()
        if raw == "":
            return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    if math.isnan(value) or math.isinf(value) or value < 0:
        return None
    return int(value) if value.is_integer() else value


def record_score(results, viewer, opponent, mine, theirs):
    key = stored_key(results, viewer, opponent)
    if key == (viewer, opponent):
        value = MatchResult(mine, theirs)
    else:
        value = MatchResult(theirs, mine)
    updated = {k: v for k, v in results.items() if k != key}
    if not value.is_empty:
        updated[key] = value
    return updated


def record_outcome(results, viewer, opponent, outcome):
    if outcome is None:
        return clear_result(results, viewer, opponent)
    mine = {Outcome.WIN: 1, Outcome.DRAW: DRAW_VALUE, Outcome.LOSS: 0}[outcome]
    return record_score(results, viewer, opponent, mine, 1 - mine)


def clear_result(results, p1, p2):
    return {k: v for k, v in results.items() if k not in ((p1, p2), (p2, p1))}

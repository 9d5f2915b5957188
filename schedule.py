import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)

# placeholder that pads odd rosters; whoever is paired with it rests that round
BYE = None


@dataclass(frozen=True)
class ScheduledMatch:
    sequence: int | None
    participant_a: object
    participant_b: object
    is_bye: bool = False


@dataclass(frozen=True)
class RoundSchedule:
    number: int
    matches: tuple

    @property
    def real_matches(self):
        return tuple(m for m in self.matches if not m.is_bye)

    @property
    def resting(self):
        return next((m.participant_a for m in self.matches if m.is_bye), None)


# --------------------------------------------------------------------------- #
# Circle method
# --------------------------------------------------------------------------- #
def generate_schedule(roster):
    """Rounds for every participant to meet every other exactly once.

    The first participant stays fixed while the rest rotate one step per
    round; odd rosters get a bye slot, so N participants take N - 1 rounds
    when N is even and N rounds when it is odd.
    """
    players = list(roster)
    if len(players) < 2:
        return []
    if len(players) % 2:
        players.append(BYE)

    n = len(players)
    half = n // 2
    anchor, rotating = players[0], players[1:]
    sequence = 0
    rounds = []

    for number in range(1, n):
        pairs = [(anchor, rotating[-1])]
        for i in range(half - 1):
            pairs.append((rotating[i], rotating[n - 3 - i]))

        matches = []
        for a, b in pairs:
            if a is BYE or b is BYE:
                resting = b if a is BYE else a
                matches.append(ScheduledMatch(None, resting, BYE, is_bye=True))
            else:
                sequence += 1
                matches.append(ScheduledMatch(sequence, a, b))

        # byes are listed last; sequence numbers are already fixed
        matches.sort(key=lambda m: m.is_bye)
        rounds.append(RoundSchedule(number, tuple(matches)))
        rotating = [rotating[-1]] + rotating[:-1]

    logger.debug(f"Scheduled {sequence} matches over {len(rounds)} rounds")
    return rounds


def match_order_map(schedule):
    """Sequence number of every scheduled pair, keyed by id in both orders."""
    order = {}
    for rnd in schedule:
        for m in rnd.real_matches:
            a, b = m.participant_a.id, m.participant_b.id
            order[(a, b)] = m.sequence
            order[(b, a)] = m.sequence
    return order


def resting_participant(rnd):
    return rnd.resting

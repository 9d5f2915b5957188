import pytest

from league import (
    MAX_PARTICIPANTS,
    MatchResult,
    MatchStatus,
    Mode,
    Outcome,
    Participant,
    PointsRule,
    RosterFullError,
    add_participant,
    clear_result,
    compute_standings,
    duplicate_names,
    is_confirmed,
    leader,
    lookup_result,
    match_status,
    outcome_for,
    parse_score,
    record_outcome,
    record_score,
    remove_participant,
)

A = Participant("a", "Alice")
B = Participant("b", "Bob")
C = Participant("c", "Carol")
D = Participant("d", "Dave")


def _order(standings):
    return [s.participant.id for s in standings]


def _by_id(standings):
    return {s.participant.id: s for s in standings}


# --------------------------------------------------------------------------- #
# Lookup & confirmation
# --------------------------------------------------------------------------- #
def test_lookup_swaps_reverse_stored_result():
    results = {("a", "b"): MatchResult(3, 1)}
    assert lookup_result(results, "a", "b") == (3, 1)
    assert lookup_result(results, "b", "a") == (1, 3)
    assert lookup_result(results, "a", "c") is None


def test_lookup_keeps_partial_scores_in_viewpoint():
    results = {("b", "a"): MatchResult(None, 2)}
    assert lookup_result(results, "a", "b") == (2, None)


@pytest.mark.parametrize("scores,mode,allow_draw,expected", [
    ((2, 1), Mode.SCORE, False, True),
    ((2, 2), Mode.SCORE, True, True),
    ((2, 2), Mode.SCORE, False, False),
    ((None, 1), Mode.SCORE, True, False),
    ((1, 0), Mode.WIN_LOSS, False, True),
    ((0.5, 0.5), Mode.WIN_LOSS, True, True),
    ((0.5, 0.5), Mode.WIN_LOSS, False, False),
])
def test_is_confirmed(scores, mode, allow_draw, expected):
    results = {("a", "b"): MatchResult(*scores)}
    assert is_confirmed(results, "a", "b", mode, allow_draw) is expected
    assert is_confirmed(results, "b", "a", mode, allow_draw) is expected


def test_is_confirmed_without_result():
    assert not is_confirmed({}, "a", "b", Mode.SCORE, True)


def test_match_status():
    results = {("a", "b"): MatchResult(1, None), ("a", "c"): MatchResult(2, 2), ("b", "c"): MatchResult(0, 4)}
    assert match_status(results, "a", "d", Mode.SCORE, False) is MatchStatus.PENDING
    assert match_status(results, "b", "a", Mode.SCORE, False) is MatchStatus.PARTIAL
    assert match_status(results, "c", "a", Mode.SCORE, False) is MatchStatus.UNCONFIRMED
    assert match_status(results, "c", "b", Mode.SCORE, False) is MatchStatus.CONFIRMED


@pytest.mark.parametrize("a,b", [(3, 1), (0, 2), (2, 2), (1, 0), (0.5, 0.5)])
def test_outcome_is_symmetric(a, b):
    opposite = {Outcome.WIN: Outcome.LOSS, Outcome.LOSS: Outcome.WIN, Outcome.DRAW: Outcome.DRAW}
    assert outcome_for(b, a) is opposite[outcome_for(a, b)]


def test_points_rule():
    rule = PointsRule()
    assert [rule.points(o) for o in Outcome] == [3, 1, 0]
    assert PointsRule(win=2).points(Outcome.WIN) == 2


# --------------------------------------------------------------------------- #
# Standings
# --------------------------------------------------------------------------- #
def test_score_mode_scenario_with_draw():
    roster = [A, B, C]
    results = {("a", "b"): MatchResult(3, 1), ("b", "c"): MatchResult(2, 2)}
    standings = compute_standings(roster, results, Mode.SCORE, True)
    stats = _by_id(standings)

    assert (stats["a"].wins, stats["a"].losses, stats["a"].draws) == (1, 0, 0)
    assert (stats["b"].wins, stats["b"].losses, stats["b"].draws) == (0, 1, 1)
    assert (stats["c"].wins, stats["c"].losses, stats["c"].draws) == (0, 0, 1)
    assert stats["a"].goal_difference == 2
    assert stats["b"].goals_for == 3 and stats["b"].goal_difference == -2
    # B and C level on points, C has fewer losses
    assert _order(standings) == ["a", "c", "b"]


def test_draw_not_allowed_contributes_nothing():
    results = {("a", "b"): MatchResult(2, 2)}
    standings = compute_standings([A, B], results, Mode.SCORE, False)
    assert not is_confirmed(results, "a", "b", Mode.SCORE, False)
    for s in standings:
        assert (s.played, s.wins, s.draws, s.losses, s.goals_for, s.points) == (0, 0, 0, 0, 0, 0)
    assert leader(standings) is None


def test_head_to_head_comes_before_goal_difference():
    # A and B both finish 1W 1L; A won their meeting but B has the better goal difference
    roster = [A, B, C, D]
    results = {
        ("a", "b"): MatchResult(1, 0),
        ("b", "c"): MatchResult(5, 0),
        ("d", "a"): MatchResult(1, 0),
    }
    standings = compute_standings(roster, results, Mode.SCORE, True)
    stats = _by_id(standings)
    assert stats["a"].points == stats["b"].points == 3
    assert stats["a"].losses == stats["b"].losses == 1
    assert stats["b"].goal_difference > stats["a"].goal_difference
    assert _order(standings) == ["d", "a", "b", "c"]


def test_head_to_head_uses_reverse_stored_result():
    w, x, y, z = (Participant("w", "Walt"), Participant("x", "Zed"),
                  Participant("y", "Amy"), Participant("z", "Zoe"))
    results = {
        ("y", "x"): MatchResult(0, 1),
        ("w", "x"): MatchResult(1, 0),
        ("y", "z"): MatchResult(1, 0),
    }
    standings = compute_standings([w, x, y, z], results, Mode.WIN_LOSS, True)
    assert _order(standings) == ["w", "x", "y", "z"]


def test_goal_difference_then_goals_for():
    roster = [A, B, C, D]
    results = {
        ("a", "c"): MatchResult(5, 1),
        ("b", "d"): MatchResult(3, 0),
    }
    assert _order(compute_standings(roster, results, Mode.SCORE, True))[:2] == ["a", "b"]

    results = {
        ("a", "c"): MatchResult(4, 2),
        ("b", "d"): MatchResult(3, 1),
    }
    assert _order(compute_standings(roster, results, Mode.SCORE, True))[:2] == ["a", "b"]


def test_wins_break_tie_after_goals_for():
    # Bob 1W 1L and Alice 3D 1L: both 3 pts, GD -1, GF 1
    e, f = Participant("e", "Eve"), Participant("f", "Fay")
    results = {
        ("b", "c"): MatchResult(1, 0),
        ("d", "b"): MatchResult(2, 0),
        ("a", "c"): MatchResult(0, 0),
        ("a", "d"): MatchResult(0, 0),
        ("a", "e"): MatchResult(1, 1),
        ("f", "a"): MatchResult(1, 0),
    }
    standings = compute_standings([A, B, C, D, e, f], results, Mode.SCORE, True)
    stats = _by_id(standings)
    assert (stats["a"].points, stats["a"].goal_difference, stats["a"].goals_for) == (3, -1, 1)
    assert (stats["b"].points, stats["b"].goal_difference, stats["b"].goals_for) == (3, -1, 1)
    assert _order(standings) == ["d", "f", "b", "a", "e", "c"]


def test_win_loss_mode_fewer_losses_after_wins():
    e = Participant("e", "Eve")
    results = {
        ("a", "c"): MatchResult(1, 0),
        ("d", "a"): MatchResult(1, 0),
        ("b", "e"): MatchResult(1, 0),
    }
    standings = compute_standings([A, B, C, D, e], results, Mode.WIN_LOSS, True)
    assert _order(standings) == ["b", "d", "a", "c", "e"]


def test_win_loss_mode_more_wins_on_equal_points():
    e, f = Participant("e", "Eve"), Participant("f", "Fay")
    results = {
        ("b", "c"): MatchResult(1, 0),
        ("a", "d"): MatchResult(0.5, 0.5),
        ("a", "e"): MatchResult(0.5, 0.5),
        ("f", "a"): MatchResult(0.5, 0.5),
    }
    standings = compute_standings([A, B, C, D, e, f], results, Mode.WIN_LOSS, True)
    stats = _by_id(standings)
    assert stats["a"].points == stats["b"].points == 3
    assert _order(standings)[:2] == ["b", "a"]


def test_name_breaks_full_tie():
    roster = [Participant("1", "bravo"), Participant("2", "Alpha"), Participant("3", "charlie")]
    standings = compute_standings(roster, {}, Mode.SCORE, True)
    assert [s.name for s in standings] == ["Alpha", "bravo", "charlie"]
    assert all(s.played == 0 and s.goal_difference == 0 for s in standings)


def test_win_loss_mode_ignores_goals():
    results = {("a", "b"): MatchResult(1, 0), ("c", "a"): MatchResult(0.5, 0.5)}
    stats = _by_id(compute_standings([A, B, C], results, "win-loss", True))
    assert stats["a"].wins == 1 and stats["a"].draws == 1 and stats["a"].points == 4
    assert stats["a"].goals_for == 0 and stats["a"].goal_difference == 0
    assert stats["b"].losses == 1 and stats["c"].draws == 1


def test_totals_match_confirmed_results():
    roster = [A, B, C, D]
    results = {
        ("a", "b"): MatchResult(2, 0),
        ("c", "a"): MatchResult(1, 1),
        ("b", "c"): MatchResult(None, 3),
        ("d", "b"): MatchResult(0, 4),
        ("c", "d"): MatchResult(2, 2),
    }
    standings = compute_standings(roster, results, Mode.SCORE, True)
    assert sum(s.played for s in standings) == 2 * 4
    assert sum(s.wins for s in standings) == 2
    assert sum(s.losses for s in standings) == 2
    assert sum(s.draws for s in standings) == 2 * 2


def test_standings_ignore_roster_order():
    results = {("a", "b"): MatchResult(1, 1), ("c", "d"): MatchResult(2, 0)}
    first = compute_standings([A, B, C, D], results, Mode.SCORE, True)
    again = compute_standings([A, B, C, D], results, Mode.SCORE, True)
    swapped = compute_standings([B, A, D, C], results, Mode.SCORE, True)
    assert _order(first) == _order(again) == _order(swapped)


def test_results_outside_roster_are_ignored():
    results = {("a", "gone"): MatchResult(5, 0)}
    standings = compute_standings([A, B], results, Mode.SCORE, True)
    assert all(s.played == 0 for s in standings)


def test_leader_requires_a_confirmed_result():
    results = {("a", "b"): MatchResult(0, 1)}
    assert leader(compute_standings([A, B], results, Mode.SCORE, True)).participant == B
    assert leader([]) is None


# --------------------------------------------------------------------------- #
# Editing
# --------------------------------------------------------------------------- #
@pytest.mark.parametrize("raw,expected", [
    ("3", 3), (" 2 ", 2), ("1.5", 1.5), (4, 4), (2.0, 2),
    ("", None), ("  ", None), ("abc", None), ("-1", None), (None, None),
    ("nan", None), ("inf", None), (True, None),
])
def test_parse_score(raw, expected):
    assert parse_score(raw) == expected


def test_record_score_writes_existing_direction():
    results = {("b", "a"): MatchResult(None, 4)}
    updated = record_score(results, "a", "b", 4, 2)
    assert updated == {("b", "a"): MatchResult(2, 4)}
    assert results == {("b", "a"): MatchResult(None, 4)}


def test_record_score_new_pair_uses_viewpoint():
    updated = record_score({}, "a", "b", 1, None)
    assert updated == {("a", "b"): MatchResult(1, None)}
    assert record_score(updated, "b", "a", None, None) == {}


def test_record_outcome_encodes_viewpoint():
    results = record_outcome({}, "a", "b", Outcome.WIN)
    assert results == {("a", "b"): MatchResult(1, 0)}
    results = record_outcome(results, "b", "a", Outcome.WIN)
    assert results == {("a", "b"): MatchResult(0, 1)}
    results = record_outcome(results, "a", "b", Outcome.DRAW)
    assert lookup_result(results, "b", "a") == (0.5, 0.5)
    assert record_outcome(results, "b", "a", None) == {}


def test_clear_result_either_direction():
    results = {("a", "b"): MatchResult(1, 0), ("a", "c"): MatchResult(0, 1)}
    assert clear_result(results, "b", "a") == {("a", "c"): MatchResult(0, 1)}


def test_add_participant():
    roster = add_participant((), "  Alice ")
    assert len(roster) == 1 and roster[0].name == "Alice" and len(roster[0].id) == 8
    assert add_participant(roster, "   ") == roster
    roster = add_participant(roster, "Bob")
    assert roster[0].id != roster[1].id


def test_add_participant_past_cap():
    roster = ()
    for i in range(MAX_PARTICIPANTS):
        roster = add_participant(roster, f"P{i}")
    with pytest.raises(RosterFullError):
        add_participant(roster, "One too many")


def test_remove_participant_drops_results():
    results = {("a", "b"): MatchResult(1, 0), ("c", "b"): MatchResult(2, 2)}
    roster, updated = remove_participant((A, B, C), results, "a")
    assert roster == (B, C)
    assert updated == {("c", "b"): MatchResult(2, 2)}


def test_duplicate_names():
    roster = (A, Participant("x", "alice "), B)
    assert duplicate_names(roster) == {"alice"}
    assert duplicate_names((A, B)) == set()

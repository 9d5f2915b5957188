import logging
import os

import streamlit as st

import export
from league import (
    DRAW_VALUE,
    MAX_PARTICIPANTS,
    Mode,
    MatchStatus,
    Outcome,
    RosterFullError,
    add_participant,
    compute_standings,
    duplicate_names,
    leader,
    lookup_result,
    match_status,
    parse_score,
    record_outcome,
    record_score,
    remove_participant,
    stored_key,
)
from schedule import generate_schedule, match_order_map
from snapshot import Snapshot, SnapshotStoreError, get_store

# --------------------------------------------------------------------------- #
# Logging
# --------------------------------------------------------------------------- #
def log_level(value):
    level = (value or "DEBUG").upper()
    return level if isinstance(logging.getLevelName(level), int) else "DEBUG"


logging.basicConfig(level=log_level(os.getenv("LOG_LEVEL")))
logger = logging.getLogger(__name__)

WIDGET_PREFIXES = ("score_", "wl_")
OUTCOME_LABELS = {None: "–", Outcome.WIN: "Win", Outcome.DRAW: "Draw", Outcome.LOSS: "Loss"}


# --------------------------------------------------------------------------- #
# Store & snapshot state
# --------------------------------------------------------------------------- #
@st.cache_resource(show_spinner=False)
def snapshot_store():
    store = get_store()
    store.init_schema()
    return store


def load_snapshot():
    if "snapshot" in st.session_state:
        return
    try:
        st.session_state.snapshot = snapshot_store().load()
        logger.info("Snapshot loaded")
    except SnapshotStoreError as e:
        # not marked loaded, so nothing overwrites the stored row this session
        logger.error(f"Load error: {e}")
        st.error(f"Load error: {e}. Changes will not be saved.")
        st.session_state.snapshot = Snapshot()
        return
    st.session_state.loaded = True


def current():
    return st.session_state.snapshot


def commit(snapshot):
    st.session_state.snapshot = snapshot
    if not st.session_state.get("loaded"):
        return
    try:
        snapshot_store().save(snapshot)
    except SnapshotStoreError as e:
        st.error(f"Save error: {e}")


def wipe_widgets():
    for k in list(st.session_state.keys()):
        if isinstance(k, str) and k.startswith(WIDGET_PREFIXES):
            del st.session_state[k]


# --------------------------------------------------------------------------- #
# Score input – normalized on change
# --------------------------------------------------------------------------- #
def _sync_score(viewer, opponent, mine_key, theirs_key):
    raw_mine = st.session_state.get(mine_key, "")
    raw_theirs = st.session_state.get(theirs_key, "")
    mine, theirs = parse_score(raw_mine), parse_score(raw_theirs)
    if (raw_mine.strip() and mine is None) or (raw_theirs.strip() and theirs is None):
        st.toast("Scores must be non-negative numbers")
    st.session_state[mine_key] = export.fmt_number(mine)
    st.session_state[theirs_key] = export.fmt_number(theirs)
    snap = current()
    commit(snap.evolve(matches=record_score(snap.matches, viewer, opponent, mine, theirs)))


def score_inputs(viewer, opponent, disabled=False):
    k1 = f"score_{viewer}_{opponent}_a"
    k2 = f"score_{viewer}_{opponent}_b"
    scores = lookup_result(current().matches, viewer, opponent) or (None, None)
    if k1 not in st.session_state:
        st.session_state[k1] = export.fmt_number(scores[0])
    if k2 not in st.session_state:
        st.session_state[k2] = export.fmt_number(scores[1])

    c1, c2 = st.columns(2)
    with c1:
        st.text_input(" ", key=k1, disabled=disabled, label_visibility="collapsed",
                      on_change=_sync_score, args=(viewer, opponent, k1, k2))
    with c2:
        st.text_input(" ", key=k2, disabled=disabled, label_visibility="collapsed",
                      on_change=_sync_score, args=(viewer, opponent, k1, k2))


def _sync_outcome(viewer, opponent, key):
    outcome = st.session_state[key]
    snap = current()
    commit(snap.evolve(matches=record_outcome(snap.matches, viewer, opponent, outcome)))


def outcome_input(viewer, opponent, allow_draw):
    key = f"wl_{viewer}_{opponent}"
    options = [None, Outcome.WIN] + ([Outcome.DRAW] if allow_draw else []) + [Outcome.LOSS]
    scores = lookup_result(current().matches, viewer, opponent)
    if key not in st.session_state:
        mine = scores[0] if scores else None
        value = {1: Outcome.WIN, DRAW_VALUE: Outcome.DRAW, 0: Outcome.LOSS}.get(mine)
        st.session_state[key] = value if value in options else None
    st.radio(" ", options, key=key, horizontal=True, label_visibility="collapsed",
             format_func=OUTCOME_LABELS.get, on_change=_sync_outcome, args=(viewer, opponent, key))


def match_row(number, p1, p2, snap):
    # the stored direction decides which side is shown first
    viewer, opponent = stored_key(snap.matches, p1.id, p2.id)
    names = {p1.id: p1.name, p2.id: p2.name}
    n, left, entry, right, stat = st.columns([0.4, 1.3, 1.6, 1.3, 0.9])
    with n:
        st.write(f"**{number}**" if number else "")
    with left:
        st.markdown(f"**{names[viewer]}**")
    with entry:
        if snap.mode == Mode.SCORE:
            score_inputs(viewer, opponent)
        else:
            outcome_input(viewer, opponent, snap.allow_draw)
    with right:
        st.markdown(f"**{names[opponent]}**")
    with stat:
        status = match_status(snap.matches, viewer, opponent, snap.mode, snap.allow_draw)
        if status is MatchStatus.UNCONFIRMED:
            st.error("Draws are not allowed!")
        else:
            st.write(export.STATUS_LABELS[status])


# --------------------------------------------------------------------------- #
# Phases
# --------------------------------------------------------------------------- #
def settings_phase(snap):
    st.subheader("1. Settings")
    title = st.text_input("Tournament name", value=snap.title)
    mode = st.radio(
        "Scoring", list(Mode), index=list(Mode).index(snap.mode), horizontal=True,
        format_func=lambda m: "Score entry" if m == Mode.SCORE else "Win / loss only",
        help="Score entry ranks by goal difference too; win / loss records outcomes only.",
    )
    allow_draw = st.checkbox("Allow draws", value=snap.allow_draw)
    show_order = st.checkbox("Show match order", value=snap.show_order)

    if mode != snap.mode and snap.matches:
        st.warning("Changing the scoring mode clears all recorded results.")

    if st.button("Next: register participants", use_container_width=True, type="primary"):
        matches = snap.matches if mode == snap.mode else {}
        # draw options and input kinds may have changed
        wipe_widgets()
        commit(snap.evolve(title=title.strip() or snap.title, mode=mode, allow_draw=allow_draw,
                           show_order=show_order, matches=matches, phase="register"))
        st.rerun()


def register_phase(snap):
    left, right = st.columns([3, 1])
    with left:
        st.subheader(f"2. Participants ({len(snap.players)}/{MAX_PARTICIPANTS})")
    with right:
        if st.button("Back to settings"):
            commit(snap.evolve(phase="settings"))
            st.rerun()

    with st.form("add_player_form", clear_on_submit=True):
        name = st.text_input("Name")
        if st.form_submit_button("Add", disabled=len(snap.players) >= MAX_PARTICIPANTS):
            try:
                players = add_participant(snap.players, name)
            except RosterFullError as e:
                st.error(str(e))
            else:
                if players != snap.players:
                    commit(snap.evolve(players=players))
                    st.rerun()

    dupes = duplicate_names(snap.players)
    if dupes:
        st.warning(f"Duplicate names: {', '.join(sorted(dupes))}")

    if not snap.players:
        st.info("No participants yet – add some above.")
    for idx, p in enumerate(snap.players, start=1):
        row_left, row_right = st.columns([8, 2])
        with row_left:
            st.write(f"{idx}. {p.name}")
        with row_right:
            if st.button("🗑️", key=f"del_{p.id}", help="Remove participant"):
                players, matches = remove_participant(snap.players, snap.matches, p.id)
                wipe_widgets()
                commit(snap.evolve(players=players, matches=matches))
                st.rerun()

    if len(snap.players) >= 2:
        if st.button("Start matches", use_container_width=True, type="primary"):
            commit(snap.evolve(phase="match"))
            st.rerun()


def match_phase(snap):
    roster = snap.players
    schedule = generate_schedule(roster)
    order = match_order_map(schedule)
    standings = compute_standings(roster, snap.matches, snap.mode, snap.allow_draw)
    top = leader(standings)

    if st.button("← Back to participants"):
        commit(snap.evolve(phase="register"))
        st.rerun()

    st.header(f"**{snap.title}**")

    # ---- match entry ----
    if snap.show_order:
        st.subheader("Rounds")
        for rnd in schedule:
            real = rnd.real_matches
            done = all(
                match_status(snap.matches, m.participant_a.id, m.participant_b.id,
                             snap.mode, snap.allow_draw) is MatchStatus.CONFIRMED
                for m in real
            )
            with st.expander(f"Round {rnd.number} – {len(real)} matches", expanded=not done):
                for m in real:
                    match_row(m.sequence, m.participant_a, m.participant_b, snap)
                if rnd.resting is not None:
                    st.caption(f"Resting: {rnd.resting.name}")
    else:
        st.subheader("Matches")
        for i, p1 in enumerate(roster):
            for p2 in roster[i + 1:]:
                match_row(order.get((p1.id, p2.id)), p1, p2, snap)

    with st.expander("Results table"):
        grid_order = order if snap.show_order else None
        st.dataframe(export.results_grid(roster, snap.matches, snap.mode, grid_order), use_container_width=True)

    # ---- standings ----
    st.markdown("---")
    st.subheader("Current Standings")
    df = export.standings_frame(standings, snap.mode, snap.allow_draw)
    st.dataframe(df, use_container_width=True, hide_index=True)
    if top is not None:
        st.success(f"👑 Leader: **{top.name}**")

    # ---- export ----
    st.markdown("---")
    st.subheader("Export")
    sched_df = export.schedule_frame(schedule, snap.matches, snap.mode, snap.allow_draw)
    c1, c2, c3 = st.columns(3)
    with c1:
        st.download_button("Save as image", export.standings_png(snap.title, df, top is not None),
                           export.IMAGE_NAME, mime="image/png")
    with c2:
        st.download_button("Download CSV", export.to_csv_bytes(df), "standings.csv", mime="text/csv")
    with c3:
        st.download_button(
            "Download Excel",
            export.to_excel_bytes({"Standings": df, "Schedule": sched_df}),
            "league.xlsx",
            mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        )
    st.caption("Copy the summary with the button in the corner of the box.")
    st.code(export.summary_text(snap, standings, schedule), language=None)


# --------------------------------------------------------------------------- #
# Main UI
# --------------------------------------------------------------------------- #
def main():
    st.set_page_config(layout="wide", page_title="Round-Robin League")
    logger.info("App start")

    try:
        snapshot_store()
    except SnapshotStoreError as e:
        st.error(f"Failed to initialise storage: {e}")
        st.stop()

    load_snapshot()
    snap = current()

    with st.sidebar:
        st.header("Round-Robin League")
        st.caption(f"Mode: **{snap.mode.value}** · Draws: **{'on' if snap.allow_draw else 'off'}**")
        if st.button("Reset all", use_container_width=True):
            st.session_state.show_reset_confirm = True
        if st.session_state.get("show_reset_confirm", False):
            st.warning("Reset the whole tournament? This can't be undone.")
            c1, c2 = st.columns(2)
            with c1:
                if st.button("Yes", use_container_width=True):
                    wipe_widgets()
                    st.session_state.show_reset_confirm = False
                    try:
                        snapshot_store().clear()
                    except SnapshotStoreError as e:
                        st.error(f"Delete error: {e}")
                    commit(Snapshot())
                    st.rerun()
            with c2:
                if st.button("Cancel", use_container_width=True):
                    st.session_state.show_reset_confirm = False
                    st.rerun()

    if snap.phase == "settings":
        settings_phase(snap)
    elif snap.phase == "register":
        register_phase(snap)
    elif len(snap.players) < 2:
        st.info("Register at least 2 participants to continue.")
        register_phase(snap)
    else:
        match_phase(snap)


if __name__ == "__main__":
    main()

import json
import logging
import math
import os
import sqlite3
from dataclasses import dataclass, field, replace
from datetime import datetime

import psycopg2

from league import MAX_PARTICIPANTS, MatchResult, Mode, Participant

logger = logging.getLogger(__name__)

PHASES = ("settings", "register", "match")
DEFAULT_TITLE = "Round-Robin League"
DB_PATH = os.getenv("ROUNDROBIN_DB_PATH", "league.db")
STATE_KEY = os.getenv("ROUNDROBIN_STATE_KEY", "default")


class SnapshotStoreError(Exception):
    pass


# --------------------------------------------------------------------------- #
# Snapshot
# --------------------------------------------------------------------------- #
@dataclass(frozen=True)
class Snapshot:
    title: str = DEFAULT_TITLE
    mode: Mode = Mode.SCORE
    allow_draw: bool = True
    show_order: bool = True
    players: tuple = ()
    matches: dict = field(default_factory=dict)
    phase: str = "settings"

    def evolve(self, **changes):
        return replace(self, **changes)

    def to_dict(self):
        return {
            "title": self.title,
            "mode": self.mode.value,
            "allowDraw": self.allow_draw,
            "showOrder": self.show_order,
            "players": [{"id": p.id, "name": p.name} for p in self.players],
            "matches": {
                f"{a}-{b}": {"scoreA": r.score_a, "scoreB": r.score_b}
                for (a, b), r in self.matches.items()
            },
            "phase": self.phase,
        }

    def to_json(self):
        return json.dumps(self.to_dict(), ensure_ascii=False)


def _is_number(value):
    return (isinstance(value, (int, float)) and not isinstance(value, bool)
            and math.isfinite(value) and value >= 0)


def _parse_players(raw):
    if not isinstance(raw, list):
        logger.warning("Snapshot players is not a list, using empty roster")
        return ()
    players, seen = [], set()
    for item in raw:
        if not isinstance(item, dict):
            continue
        pid, name = item.get("id"), item.get("name")
        if not isinstance(pid, str) or not pid or not isinstance(name, str) or pid in seen:
            logger.warning(f"Skipping malformed participant {item!r}")
            continue
        seen.add(pid)
        players.append(Participant(pid, name))
    if len(players) > MAX_PARTICIPANTS:
        logger.warning(f"Snapshot roster truncated to {MAX_PARTICIPANTS}")
        players = players[:MAX_PARTICIPANTS]
    return tuple(players)


def _split_key(key, ids):
    # ids may contain "-" themselves, so try every split point against the roster
    for i, ch in enumerate(key):
        if ch == "-" and key[:i] in ids and key[i + 1:] in ids and key[:i] != key[i + 1:]:
            return key[:i], key[i + 1:]
    return None


def _parse_matches(raw, players):
    if not isinstance(raw, dict):
        logger.warning("Snapshot matches is not an object, using no results")
        return {}
    ids = {p.id for p in players}
    matches = {}
    for key, value in raw.items():
        pair = _split_key(key, ids) if isinstance(key, str) else None
        if pair is None or not isinstance(value, dict):
            logger.warning(f"Skipping malformed result {key!r}")
            continue
        if (pair[1], pair[0]) in matches:
            logger.warning(f"Skipping duplicate direction {key!r}")
            continue
        a, b = value.get("scoreA"), value.get("scoreB")
        result = MatchResult(a if _is_number(a) else None, b if _is_number(b) else None)
        if not result.is_empty:
            matches[pair] = result
    return matches


def parse_snapshot(data):
    """Build a Snapshot from decoded JSON, one field at a time.

    Any field of the wrong type or shape falls back to its default instead of
    rejecting the whole record.
    """
    default = Snapshot()
    if not isinstance(data, dict):
        logger.warning("Snapshot is not an object, using defaults")
        return default

    title = data.get("title")
    if not isinstance(title, str):
        title = default.title
    try:
        mode = Mode(data.get("mode"))
    except ValueError:
        mode = default.mode
    allow_draw = data.get("allowDraw")
    if not isinstance(allow_draw, bool):
        allow_draw = default.allow_draw
    show_order = data.get("showOrder")
    if not isinstance(show_order, bool):
        show_order = default.show_order
    phase = data.get("phase")
    if phase not in PHASES:
        phase = default.phase

    players = _parse_players(data.get("players", []))
    matches = _parse_matches(data.get("matches", {}), players)
    return Snapshot(title, mode, allow_draw, show_order, players, matches, phase)


def loads(text):
    if not text:
        return Snapshot()
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as e:
        logger.warning(f"Unreadable snapshot, using defaults: {e}")
        return Snapshot()
    return parse_snapshot(data)


# --------------------------------------------------------------------------- #
# Stores
# --------------------------------------------------------------------------- #
class SqliteSnapshotStore:
    def __init__(self, path=DB_PATH, key=STATE_KEY):
        self.path = path
        self.key = key

    def connect(self):
        return sqlite3.connect(self.path)

    def init_schema(self):
        conn = self.connect()
        try:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS snapshots (
                    key        TEXT PRIMARY KEY,
                    data       TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            conn.commit()
            logger.info(f"SQLite schema ensured at {self.path}")
        except sqlite3.Error as e:
            logger.error(f"Schema init error: {e}")
            conn.rollback()
            raise SnapshotStoreError(str(e)) from e
        finally:
            conn.close()

    def load(self):
        conn = self.connect()
        try:
            row = conn.execute("SELECT data FROM snapshots WHERE key=?", (self.key,)).fetchone()
        except sqlite3.Error as e:
            logger.error(f"Load snapshot error: {e}")
            raise SnapshotStoreError(str(e)) from e
        finally:
            conn.close()
        return loads(row[0]) if row else Snapshot()

    def save(self, snapshot):
        now = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        conn = self.connect()
        try:
            conn.execute(
                "INSERT INTO snapshots (key,data,updated_at) VALUES (?,?,?) "
                "ON CONFLICT(key) DO UPDATE SET data=excluded.data, updated_at=excluded.updated_at",
                (self.key, snapshot.to_json(), now),
            )
            conn.commit()
            logger.info(f"Saved snapshot {self.key}")
        except sqlite3.Error as e:
            logger.error(f"Save snapshot error: {e}")
            conn.rollback()
            raise SnapshotStoreError(str(e)) from e
        finally:
            conn.close()

    def clear(self):
        conn = self.connect()
        try:
            conn.execute("DELETE FROM snapshots WHERE key=?", (self.key,))
            conn.commit()
        except sqlite3.Error as e:
            logger.error(f"Delete snapshot error: {e}")
            conn.rollback()
            raise SnapshotStoreError(str(e)) from e
        finally:
            conn.close()


class PostgresSnapshotStore:
    def __init__(self, url, key=STATE_KEY, sslmode=None):
        self.url = url
        self.key = key
        self.sslmode = sslmode or os.getenv("PGSSLMODE", "require")

    def connect(self):
        return psycopg2.connect(self.url, sslmode=self.sslmode)

    def init_schema(self):
        conn = self.connect()
        cur = conn.cursor()
        try:
            cur.execute("""
                CREATE TABLE IF NOT EXISTS snapshots (
                    key        TEXT PRIMARY KEY,
                    data       TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );
            """)
            conn.commit()
            logger.info("DB schema ensured")
        except psycopg2.Error as e:
            logger.error(f"Schema init error: {e}")
            conn.rollback()
            raise SnapshotStoreError(str(e)) from e
        finally:
            cur.close()
            conn.close()

    def load(self):
        conn = self.connect()
        try:
            c = conn.cursor()
            c.execute("SELECT data FROM snapshots WHERE key=%s", (self.key,))
            row = c.fetchone()
        except psycopg2.Error as e:
            logger.error(f"Load snapshot error: {e}")
            raise SnapshotStoreError(str(e)) from e
        finally:
            conn.close()
        return loads(row[0]) if row else Snapshot()

    def save(self, snapshot):
        now = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        conn = self.connect()
        try:
            c = conn.cursor()
            c.execute(
                "INSERT INTO snapshots (key,data,updated_at) VALUES (%s,%s,%s) "
                "ON CONFLICT (key) DO UPDATE SET data=EXCLUDED.data, updated_at=EXCLUDED.updated_at",
                (self.key, snapshot.to_json(), now),
            )
            conn.commit()
            logger.info(f"Saved snapshot {self.key}")
        except psycopg2.Error as e:
            logger.error(f"Save snapshot error: {e}")
            conn.rollback()
            raise SnapshotStoreError(str(e)) from e
        finally:
            conn.close()

    def clear(self):
        conn = self.connect()
        try:
            c = conn.cursor()
            c.execute("DELETE FROM snapshots WHERE key=%s", (self.key,))
            conn.commit()
        except psycopg2.Error as e:
            logger.error(f"Delete snapshot error: {e}")
            conn.rollback()
            raise SnapshotStoreError(str(e)) from e
        finally:
            conn.close()


def get_store():
    url = os.getenv("DATABASE_URL")
    if url:
        return PostgresSnapshotStore(url)
    return SqliteSnapshotStore()

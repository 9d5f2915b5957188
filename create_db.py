import argparse
import os

from snapshot import DB_PATH, STATE_KEY, SnapshotStoreError, SqliteSnapshotStore, loads


def create_fresh_db(db_path=DB_PATH, seed_file=None, key=STATE_KEY):
    """
    Deletes the old database file if it exists and creates a new one with the
    snapshot table, optionally seeded from a saved snapshot JSON file.
    """
    if os.path.exists(db_path):
        os.remove(db_path)
        print(f"Removed existing database file: {db_path}")

    store = SqliteSnapshotStore(db_path, key)
    try:
        store.init_schema()
        if seed_file:
            with open(seed_file, "r", encoding="utf-8") as f:
                snapshot = loads(f.read())
            store.save(snapshot)
            print(f"Seeded '{key}' with {len(snapshot.players)} participants from {seed_file}")
        print(f"Successfully created a fresh database: {db_path}")
        return store
    except SnapshotStoreError as e:
        print(f"An error occurred while creating the database: {e}")
        return None


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Recreate the local league database")
    parser.add_argument("--db", default=DB_PATH)
    parser.add_argument("--seed", help="snapshot JSON file to load into the new database")
    parser.add_argument("--key", default=STATE_KEY)
    args = parser.parse_args()
    create_fresh_db(args.db, args.seed, args.key)

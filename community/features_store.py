from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from enum import IntEnum
from typing import Any


class FeatureState(IntEnum):
    ALL = -1
    TODO = 0
    IMPLEMENTED = 1
    REJECTED = 2
    POSTPONED = 3

    @property
    def label(self) -> str:
        return _STATE_LABELS[self]

    @property
    def emoji(self) -> str:
        return _STATE_EMOJI[self]

    @property
    def colour(self) -> int:
        return _STATE_COLOURS[self]

    @classmethod
    def parse(cls, text: str) -> "FeatureState":
        raw = str(text or "").strip().lower().replace(" ", "").replace("_", "")
        for state in cls:
            if raw in (state.name.lower(), state.label.lower().replace(" ", ""), str(int(state))):
                return state
        raise ValueError(f"Unknown feature state: {text!r}")


_STATE_LABELS = {
    FeatureState.ALL: "All",
    FeatureState.TODO: "To Do",
    FeatureState.IMPLEMENTED: "Implemented",
    FeatureState.REJECTED: "Rejected",
    FeatureState.POSTPONED: "Postponed",
}
_STATE_EMOJI = {
    FeatureState.ALL: "🟡",
    FeatureState.TODO: "🔵",
    FeatureState.IMPLEMENTED: "🟢",
    FeatureState.REJECTED: "🔴",
    FeatureState.POSTPONED: "🟣",
}
# discord.Colour gold/dark_blue/dark_green/dark_red/dark_purple values
_STATE_COLOURS = {
    FeatureState.ALL: 0xF1C40F,
    FeatureState.TODO: 0x206694,
    FeatureState.IMPLEMENTED: 0x1F8B4C,
    FeatureState.REJECTED: 0x992D22,
    FeatureState.POSTPONED: 0x71368A,
}


@dataclass(frozen=True, slots=True)
class Feature:
    id: int
    name: str
    state: FeatureState
    created_ts: int


def _row_to_feature(row) -> Feature:
    return Feature(id=int(row[0]), name=str(row[1]), state=FeatureState(int(row[2])), created_ts=int(row[3]))


def add_feature_sync(conn: sqlite3.Connection, *, name: str, created_ts: int) -> int:
    """Raises sqlite3.IntegrityError when the name exists."""
    cur = conn.cursor()
    try:
        cur.execute(
            "INSERT INTO features (name, state, created_ts) VALUES (?, ?, ?)",
            (str(name), int(FeatureState.TODO), int(created_ts)),
        )
        conn.commit()
    except sqlite3.IntegrityError:
        conn.rollback()
        raise
    return int(cur.lastrowid)


def update_feature_state_sync(conn: sqlite3.Connection, *, name: str, state: FeatureState) -> int:
    if state == FeatureState.ALL:
        raise ValueError("ALL is a filter, not a storable state")
    cur = conn.cursor()
    cur.execute("UPDATE features SET state = ? WHERE name = ?", (int(state), str(name)))
    updated = int(cur.rowcount or 0)
    conn.commit()
    return updated


def delete_feature_sync(conn: sqlite3.Connection, name: str) -> int:
    cur = conn.cursor()
    cur.execute("DELETE FROM features WHERE name = ?", (str(name),))
    deleted = int(cur.rowcount or 0)
    conn.commit()
    return deleted


def count_features_sync(conn: sqlite3.Connection, state: FeatureState) -> int:
    cur = conn.cursor()
    if state == FeatureState.ALL:
        cur.execute("SELECT COUNT(*) FROM features")
    else:
        cur.execute("SELECT COUNT(*) FROM features WHERE state = ?", (int(state),))
    return int(cur.fetchone()[0])


def list_features_sync(
    conn: sqlite3.Connection,
    *,
    state: FeatureState,
    offset: int,
    limit: int,
) -> list[Feature]:
    cur = conn.cursor()
    params: tuple[Any, ...]
    if state == FeatureState.ALL:
        sql = "SELECT id, name, state, created_ts FROM features ORDER BY id LIMIT ? OFFSET ?"
        params = (int(limit), int(offset))
    else:
        sql = "SELECT id, name, state, created_ts FROM features WHERE state = ? ORDER BY id LIMIT ? OFFSET ?"
        params = (int(state), int(limit), int(offset))
    cur.execute(sql, params)
    return [_row_to_feature(r) for r in cur.fetchall()]

"""Stable integer identities for reaction emoji.

Custom guild emoji keep their Discord snowflake. Unicode emoji have no native
id, so each grapheme is assigned a surrogate row in ``emoji_surrogates`` on
first sight. Surrogates are tagged with ``SURROGATE_TAG`` so the two id spaces
can never collide, whatever value a snowflake happens to have.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass


SURROGATE_TAG = 1 << 62
IDENTITY_MASK = (1 << 63) - 1


class EmojiIdentityError(RuntimeError):
    pass


@dataclass(frozen=True, slots=True)
class CustomEmojiRef:
    id: int
    name: str | None = None
    animated: bool = False

    def __str__(self) -> str:
        prefix = "a" if self.animated else ""
        return f"<{prefix}:{self.name or '_'}:{int(self.id)}>"


@dataclass(frozen=True, slots=True)
class UnicodeEmojiRef:
    grapheme: str

    def __str__(self) -> str:
        return self.grapheme


EmojiRef = CustomEmojiRef | UnicodeEmojiRef


def emoji_ref_from_partial(emoji) -> EmojiRef:
    """Accepts a discord.PartialEmoji, discord.Emoji or a plain string."""
    if isinstance(emoji, str):
        text = emoji.strip()
        if not text:
            raise ValueError("empty emoji")
        return UnicodeEmojiRef(grapheme=text)
    emoji_id = getattr(emoji, "id", None)
    if emoji_id is not None:
        return CustomEmojiRef(
            id=int(emoji_id),
            name=getattr(emoji, "name", None),
            animated=bool(getattr(emoji, "animated", False)),
        )
    name = str(getattr(emoji, "name", "") or "").strip()
    if not name:
        raise ValueError(f"Unsupported emoji: {emoji!r}")
    return UnicodeEmojiRef(grapheme=name)


def is_surrogate_identity(identity: int) -> bool:
    return bool(int(identity) & SURROGATE_TAG)


def surrogate_row_id(identity: int) -> int:
    if not is_surrogate_identity(identity):
        raise ValueError(f"Not a surrogate emoji identity: {identity}")
    return int(identity) & ~SURROGATE_TAG


def custom_emoji_identity(emoji_id: int) -> int:
    value = int(emoji_id)
    if value <= 0 or value & ~IDENTITY_MASK or value & SURROGATE_TAG:
        raise EmojiIdentityError(f"Custom emoji id out of range: {emoji_id}")
    return value


def _lookup_surrogate_sync(conn: sqlite3.Connection, grapheme: str) -> int | None:
    cur = conn.cursor()
    cur.execute("SELECT id FROM emoji_surrogates WHERE grapheme = ? LIMIT 1", (grapheme,))
    row = cur.fetchone()
    if not row:
        return None
    return int(row[0])


def resolve_emoji_identity_sync(conn: sqlite3.Connection, ref: EmojiRef) -> int:
    if isinstance(ref, CustomEmojiRef):
        return custom_emoji_identity(ref.id)

    grapheme = ref.grapheme
    row_id = _lookup_surrogate_sync(conn, grapheme)
    if row_id is None:
        cur = conn.cursor()
        cur.execute(
            "INSERT INTO emoji_surrogates (grapheme) VALUES (?) ON CONFLICT(grapheme) DO NOTHING",
            (grapheme,),
        )
        conn.commit()
        row_id = _lookup_surrogate_sync(conn, grapheme)
    if row_id is None:
        raise EmojiIdentityError(f"Surrogate for {grapheme!r} vanished right after insert")
    return SURROGATE_TAG | int(row_id)


def lookup_emoji_identity_sync(conn: sqlite3.Connection, ref: EmojiRef) -> int | None:
    """Like resolve, but never mints a surrogate. Unknown graphemes return None."""
    if isinstance(ref, CustomEmojiRef):
        return custom_emoji_identity(ref.id)
    row_id = _lookup_surrogate_sync(conn, ref.grapheme)
    if row_id is None:
        return None
    return SURROGATE_TAG | int(row_id)


def fetch_surrogate_grapheme_sync(conn: sqlite3.Connection, identity: int) -> str | None:
    cur = conn.cursor()
    cur.execute("SELECT grapheme FROM emoji_surrogates WHERE id = ? LIMIT 1", (surrogate_row_id(identity),))
    row = cur.fetchone()
    if not row:
        return None
    return str(row[0])


def render_emoji_identity_sync(conn: sqlite3.Connection, identity: int, guild=None) -> str:
    if is_surrogate_identity(identity):
        grapheme = fetch_surrogate_grapheme_sync(conn, identity)
        return grapheme if grapheme is not None else str(int(identity))

    emoji = guild.get_emoji(int(identity)) if guild is not None else None
    if emoji is None or not getattr(emoji, "available", True):
        return str(int(identity))
    return str(emoji)

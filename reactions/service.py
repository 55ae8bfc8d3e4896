from __future__ import annotations

import asyncio
import sqlite3
import discord

from misc.discord_format import message_link
from misc.discord_format import role_mention
from misc.errors import UserError
from reactions.identity import CustomEmojiRef
from reactions.identity import emoji_ref_from_partial
from reactions.identity import lookup_emoji_identity_sync
from reactions.identity import render_emoji_identity_sync
from reactions.identity import resolve_emoji_identity_sync
from reactions.index import ReactionMessageIndex
from reactions.store import delete_binding_sync
from reactions.store import fetch_binding_sync
from reactions.store import increment_emoji_usage_sync
from reactions.store import insert_binding_sync
from reactions.store import list_bindings_sync
from reactions.store import list_bound_message_ids_sync
from reactions.store import list_emoji_usage_sync


class ReactionRoleService:
    def __init__(
        self,
        *,
        db_lock: asyncio.Lock,
        db_conn: sqlite3.Connection,
        index: ReactionMessageIndex,
    ):
        self.db_lock = db_lock
        self.db_conn = db_conn
        self.index = index

    async def load_index(self) -> int:
        async with self.db_lock:
            message_ids = await asyncio.to_thread(list_bound_message_ids_sync, self.db_conn)
            self.index.replace(message_ids)
        return len(message_ids)

    async def resolve_identity(self, emoji) -> int:
        ref = emoji_ref_from_partial(emoji)
        async with self.db_lock:
            return await asyncio.to_thread(resolve_emoji_identity_sync, self.db_conn, ref)

    async def add_binding(self, *, guild, role_id: int, message, emoji) -> str:
        """Bind a role to an emoji on a message and react with it. Returns the reply text."""
        role = guild.get_role(int(role_id))
        if role is None:
            raise UserError("That role does not exist in this server.")

        try:
            ref = emoji_ref_from_partial(emoji)
        except ValueError:
            raise UserError("That is not an emoji I can react with.") from None
        if isinstance(ref, CustomEmojiRef) and guild.get_emoji(int(ref.id)) is None:
            raise UserError("Custom emoji from other servers can't be used for reaction roles.")

        link = message_link(guild.id, message.channel.id, message.id)
        print(f"[ReactionRoles] adding role={int(role_id)} emoji={ref} message={link}")

        async with self.db_lock:
            emoji_id = await asyncio.to_thread(resolve_emoji_identity_sync, self.db_conn, ref)
            try:
                await asyncio.to_thread(
                    insert_binding_sync,
                    self.db_conn,
                    {
                        "message_id": int(message.id),
                        "channel_id": int(message.channel.id),
                        "guild_id": int(guild.id),
                        "role_id": int(role_id),
                        "emoji_id": int(emoji_id),
                    },
                )
            except sqlite3.IntegrityError:
                raise UserError("That emoji already has a role on this message.") from None
            self.index.mark(int(message.id))

        try:
            await message.add_reaction(emoji)
        except discord.HTTPException as e:
            # binding stays; the reaction can be re-added by hand
            print(f"[ReactionRoles] binding saved but reacting failed message={link} emoji={ref}: {e}")
            return f"Saved, but I couldn't react with {ref} myself. Add the reaction by hand."
        return "Done✅"

    async def remove_binding(self, *, message_id: int, emoji) -> bool:
        ref = emoji_ref_from_partial(emoji)
        async with self.db_lock:
            emoji_id = await asyncio.to_thread(lookup_emoji_identity_sync, self.db_conn, ref)
            if emoji_id is None:
                return False
            deleted, remaining = await asyncio.to_thread(
                delete_binding_sync,
                self.db_conn,
                int(message_id),
                int(emoji_id),
            )
            if remaining == 0:
                self.index.unmark(int(message_id))
        return deleted > 0

    async def list_binding_lines(self, *, guild, all_guilds: bool = False, client=None) -> list[str]:
        async with self.db_lock:
            bindings = await asyncio.to_thread(
                list_bindings_sync,
                self.db_conn,
                None if all_guilds else int(guild.id),
            )
            lines: list[str] = []
            for b in bindings:
                binding_guild = guild
                if all_guilds and client is not None and int(b["guild_id"]) != int(getattr(guild, "id", 0) or 0):
                    binding_guild = client.get_guild(int(b["guild_id"]))
                emoji = await asyncio.to_thread(render_emoji_identity_sync, self.db_conn, b["emoji_id"], binding_guild)
                link = message_link(b["guild_id"], b["channel_id"], b["message_id"])
                lines.append(f"{link} {emoji} {role_mention(b['role_id'])}")
        return lines

    async def on_reaction(self, client, payload, *, added: bool) -> bool:
        """Grant or revoke the bound role for a raw reaction event.

        Returns True when a role was changed. Platform failures are logged and
        reported as False; they never propagate to the event dispatcher.
        """
        message_id = int(payload.message_id)
        if not self.index.has_bindings(message_id):
            return False

        user_id = int(payload.user_id)
        if await self._is_bot_user(client, payload):
            return False

        ref = emoji_ref_from_partial(payload.emoji)
        link = message_link(payload.guild_id, payload.channel_id, message_id)
        async with self.db_lock:
            emoji_id = await asyncio.to_thread(lookup_emoji_identity_sync, self.db_conn, ref)
            binding = None
            if emoji_id is not None:
                binding = await asyncio.to_thread(fetch_binding_sync, self.db_conn, message_id, emoji_id)
        if binding is None:
            print(f"[ReactionRoles] expected reaction role here {link} with {ref}, might be unrelated reaction")
            return False

        action = "add" if added else "remove"
        guild = client.get_guild(int(binding["guild_id"]))
        if guild is None:
            print(f"[ReactionRoles] guild {binding['guild_id']} not available for {link}")
            return False
        try:
            member = guild.get_member(user_id)
            if member is None:
                member = await guild.fetch_member(user_id)
        except discord.HTTPException as e:
            print(f"[ReactionRoles] couldn't get member {user_id} for {ref} here {link}: {e}")
            return False

        role = guild.get_role(int(binding["role_id"])) or discord.Object(id=int(binding["role_id"]))
        try:
            if added:
                await member.add_roles(role, reason=f"Reaction role {ref}")
            else:
                await member.remove_roles(role, reason=f"Reaction role {ref}")
        except discord.HTTPException as e:
            print(
                f"[ReactionRoles] couldn't {action} role {binding['role_id']} for user={user_id} "
                f"emoji={ref} here {link}: {e}"
            )
            return False
        print(f"[ReactionRoles] {action} role={binding['role_id']} user={user_id} emoji={ref} message={link}")
        return True

    async def _is_bot_user(self, client, payload) -> bool:
        member = getattr(payload, "member", None)
        if member is not None:
            return bool(getattr(member, "bot", False))
        user = client.get_user(int(payload.user_id))
        if user is None:
            try:
                user = await client.fetch_user(int(payload.user_id))
            except discord.HTTPException as e:
                print(f"[ReactionRoles] couldn't fetch user {payload.user_id}: {e}")
                return True
        return bool(getattr(user, "bot", False))

    async def track_emoji_usage(self, payload) -> None:
        if payload.guild_id is None:
            return
        try:
            ref = emoji_ref_from_partial(payload.emoji)
            async with self.db_lock:
                emoji_id = await asyncio.to_thread(resolve_emoji_identity_sync, self.db_conn, ref)
                await asyncio.to_thread(increment_emoji_usage_sync, self.db_conn, int(payload.guild_id), emoji_id)
        except Exception as e:
            print(f"[EmojiUsage] failed to track {payload.emoji} in guild={payload.guild_id}: {e}")

    async def emoji_usage_lines(self, guild) -> list[str]:
        async with self.db_lock:
            rows = await asyncio.to_thread(list_emoji_usage_sync, self.db_conn, int(guild.id))
            lines: list[str] = []
            for emoji_id, count in rows:
                emoji = await asyncio.to_thread(render_emoji_identity_sync, self.db_conn, emoji_id, guild)
                lines.append(f"{emoji} {count}")
        return lines

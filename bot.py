import os
import sqlite3
import asyncio
import discord
from discord.ext import commands
from community.activity import ActivityTracker
from community.bets_service import BetService
from config.defaults import DEFAULT_ACCESS_TICK_SECONDS
from config.defaults import DEFAULT_BET_TICK_SECONDS
from config.defaults import DEFAULT_COMMAND_PREFIX
from config.defaults import DEFAULT_DB_PATH
from config.defaults import DEFAULT_FEATURE_CONFIG_PATH
from config.defaults import DEFAULT_REMINDER_TICK_SECONDS
from config.defaults import DEFAULT_TIMEZONE
from config.feature_config import load_feature_config
from config.feature_config import parse_id_set
from db.migrate import apply_sqlite_migrations
from db.migrate import list_schema_migrations_sync
from jobs.access import demote_inactive_members
from jobs.bets import announce_expired_bets
from jobs.birthdays import congratulate_birthdays
from jobs.reminders import send_due_reminders
from jobs.service import fixed_interval_loop
from jobs.service import midnight_loop
from misc.discord_format import send_chunked
from misc.man_pages import read_man_page
from misc.runtime_wiring import wire_bot_runtime
from reactions.index import ReactionMessageIndex
from reactions.service import ReactionRoleService

# =========================
# ENV
# =========================
DISCORD_TOKEN = os.getenv("DISCORD_TOKEN")

if not DISCORD_TOKEN:
    raise RuntimeError("Missing DISCORD_TOKEN env var")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        print(f"[CFG] {name}={raw!r} is not an integer; using {default}")
        return default


DB_PATH = os.getenv("FERRIS_DB_PATH", DEFAULT_DB_PATH)
COMMAND_PREFIX = os.getenv("FERRIS_COMMAND_PREFIX", DEFAULT_COMMAND_PREFIX).strip() or DEFAULT_COMMAND_PREFIX
TIMEZONE_NAME = os.getenv("FERRIS_TIMEZONE", DEFAULT_TIMEZONE).strip() or DEFAULT_TIMEZONE
OWNER_USER_IDS = parse_id_set(os.getenv("FERRIS_OWNER_USER_IDS"))

REMINDER_TICK_SECONDS = _env_int("FERRIS_REMINDER_TICK_SECONDS", DEFAULT_REMINDER_TICK_SECONDS)
BET_TICK_SECONDS = _env_int("FERRIS_BET_TICK_SECONDS", DEFAULT_BET_TICK_SECONDS)
ACCESS_TICK_SECONDS = _env_int("FERRIS_ACCESS_TICK_SECONDS", DEFAULT_ACCESS_TICK_SECONDS)
ENABLE_ACCESS_SWEEP = os.getenv("FERRIS_ENABLE_ACCESS_SWEEP", "0").strip() == "1"

_RAW_FEATURE_CONFIG_PATH = os.getenv("FERRIS_CONFIG_PATH")
FEATURE_CONFIG_PATH = _RAW_FEATURE_CONFIG_PATH or os.path.join(
    os.path.dirname(os.path.abspath(__file__)),
    DEFAULT_FEATURE_CONFIG_PATH,
)
FEATURE_CONFIG, _feature_config_warning = load_feature_config(FEATURE_CONFIG_PATH)
if _feature_config_warning:
    print(f"[CFG] {_feature_config_warning}")

print(
    f"[CFG] prefix={COMMAND_PREFIX!r} timezone={TIMEZONE_NAME} owner_ids={len(OWNER_USER_IDS)} "
    f"event_channels={len(FEATURE_CONFIG.event_channel_per_guild)} "
    f"active_guilds={len(FEATURE_CONFIG.active_guilds)} "
    f"access_guilds={len(FEATURE_CONFIG.access)} access_sweep={ENABLE_ACCESS_SWEEP}"
)


# =========================
# SQLITE
# =========================
def _table_names(cur) -> list[str]:
    cur.execute("SELECT name FROM sqlite_master WHERE type = 'table' ORDER BY name")
    return [r[0] for r in cur.fetchall()]


def init_db(db_path: str) -> sqlite3.Connection:
    # check_same_thread=False because discord.py event loop + to_thread usage
    conn = sqlite3.connect(db_path, check_same_thread=False)
    cur = conn.cursor()

    cur.execute("PRAGMA journal_mode=WAL;")
    cur.execute("PRAGMA synchronous=NORMAL;")
    repo_root = os.path.dirname(os.path.abspath(__file__))
    migrations_dir = os.path.join(repo_root, "migrations")
    apply_sqlite_migrations(conn, migrations_dir)

    print(f"[DB] tables: {_table_names(cur)}")
    conn.commit()
    return conn


db_conn = init_db(DB_PATH)
print(f"[DB] Using DB_PATH={DB_PATH}")
db_lock = asyncio.Lock()


def user_is_owner(user: discord.abc.User) -> bool:
    uid = int(getattr(user, "id", 0) or 0)
    return bool(uid) and uid in OWNER_USER_IDS


# =========================
# DISCORD
# =========================
intents = discord.Intents.default()
intents.message_content = True
intents.members = True
intents.reactions = True
intents.guilds = True

bot = commands.Bot(command_prefix=COMMAND_PREFIX, intents=intents)

reaction_roles = ReactionRoleService(db_lock=db_lock, db_conn=db_conn, index=ReactionMessageIndex())
bet_service = BetService(db_lock=db_lock, db_conn=db_conn, prefix=COMMAND_PREFIX)
activity = ActivityTracker(db_lock=db_lock, db_conn=db_conn, active_guilds=FEATURE_CONFIG.active_guilds)


async def reminder_loop():
    await fixed_interval_loop(
        name="Reminders",
        tick=lambda: send_due_reminders(client=bot, db_lock=db_lock, db_conn=db_conn),
        interval_seconds=REMINDER_TICK_SECONDS,
    )


async def bet_loop():
    await fixed_interval_loop(
        name="Bets",
        tick=lambda: announce_expired_bets(client=bot, db_lock=db_lock, db_conn=db_conn),
        interval_seconds=BET_TICK_SECONDS,
    )


async def birthday_loop():
    await midnight_loop(
        name="Birthdays",
        tick=lambda: congratulate_birthdays(
            client=bot,
            db_lock=db_lock,
            db_conn=db_conn,
            event_channel_per_guild=FEATURE_CONFIG.event_channel_per_guild,
            timezone_name=TIMEZONE_NAME,
        ),
        timezone_name=TIMEZONE_NAME,
    )


async def access_loop():
    await fixed_interval_loop(
        name="Access",
        tick=lambda: demote_inactive_members(
            client=bot,
            db_lock=db_lock,
            db_conn=db_conn,
            access=FEATURE_CONFIG.access,
        ),
        interval_seconds=ACCESS_TICK_SECONDS,
    )


wire_bot_runtime(
    bot,
    db_lock=db_lock,
    db_conn=db_conn,
    user_is_owner=user_is_owner,
    send_chunked=send_chunked,
    list_schema_migrations_sync=list_schema_migrations_sync,
    read_man_page=read_man_page,
    command_prefix=COMMAND_PREFIX,
    timezone_name=TIMEZONE_NAME,
    reaction_roles=reaction_roles,
    bet_service=bet_service,
    activity=activity,
    reminder_loop_func=reminder_loop,
    bet_loop_func=bet_loop,
    birthday_loop_func=birthday_loop,
    access_enabled=ENABLE_ACCESS_SWEEP,
    access_loop_func=access_loop,
)


bot.run(DISCORD_TOKEN)

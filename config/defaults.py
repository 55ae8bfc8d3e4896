DEFAULT_DB_PATH = "ferris.db"
DEFAULT_COMMAND_PREFIX = "!"
DEFAULT_TIMEZONE = "Europe/Berlin"
DEFAULT_FEATURE_CONFIG_PATH = "config/ferris.yml"

DEFAULT_REMINDER_TICK_SECONDS = 60
DEFAULT_BET_TICK_SECONDS = 60
DEFAULT_ACCESS_TICK_SECONDS = 24 * 60 * 60

DEFAULT_REMINDER_DELAY_SECONDS = 60 * 60
REACTION_PICK_TIMEOUT_SECONDS = 60
COLLECTOR_IDLE_TIMEOUT_SECONDS = 10 * 60
BOOP_IDLE_TIMEOUT_SECONDS = 10
FEATURES_PER_PAGE = 5
BETS_PER_PAGE = 5
ACTIVITY_DEBOUNCE_SECONDS = 24 * 60 * 60
DEFAULT_ACTIVE_DAYS = 30

BIRTHDAY_MESSAGE = "Happy birthday to {mentions}! 🎉"

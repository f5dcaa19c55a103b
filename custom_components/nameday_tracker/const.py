"""Constants for the Nameday Tracker integration."""
from datetime import time, timedelta
from typing import Final

DOMAIN: Final = "nameday_tracker"
PLATFORMS: Final = ["calendar", "sensor"]

API_BASE_URL: Final = "https://eortologio.iliasdev.com"

# Storage
STORAGE_VERSION: Final = 1
STORAGE_KEY_SETTINGS: Final = f"{DOMAIN}.settings"
STORAGE_KEY_FAVORITES: Final = f"{DOMAIN}.favorites"
STORAGE_KEY_LEDGER: Final = f"{DOMAIN}.scheduled_notifications"

# Config / Options keys
CONF_LANGUAGE: Final = "language"
CONF_THEME: Final = "theme"
CONF_NOTIFICATIONS_ENABLED: Final = "notifications_enabled"
CONF_NOTIFY_SERVICE: Final = "notify_service"

LANGUAGES: Final = ("el", "en")
THEMES: Final = ("light", "dark")

# Defaults
DEFAULT_LANGUAGE: Final = "el"
DEFAULT_THEME: Final = "light"
DEFAULT_NOTIFICATIONS_ENABLED: Final = False
DEFAULT_OFFSETS: Final = [0]

NOTIFICATION_TIME: Final = time(9, 0)

TODAY_UPDATE_INTERVAL: Final = timedelta(hours=1)
MONTH_CACHE_TTL: Final = timedelta(hours=24)
RECONCILE_COOLDOWN: Final = 2.0

# Notification channel used by the companion apps
NOTIFY_CHANNEL: Final = "namedays"
NOTIFY_CHANNEL_DATA: Final = {
    "channel": NOTIFY_CHANNEL,
    "importance": "high",
    "vibrationPattern": "0, 250, 250, 250",
    "ledColor": "#0D5EAF",
}

# Internal events
EVENT_FAVORITES_UPDATED: Final = f"{DOMAIN}_favorites_updated"
EVENT_SETTINGS_UPDATED: Final = f"{DOMAIN}_settings_updated"
EVENT_NOTIFICATIONS_SCHEDULED: Final = f"{DOMAIN}_notifications_scheduled"
EVENT_REMINDER_SENT: Final = f"{DOMAIN}_reminder_sent"

# Service names
SERVICE_ADD_FAVORITE: Final = "add_favorite"
SERVICE_REMOVE_FAVORITE: Final = "remove_favorite"
SERVICE_TOGGLE_NOTIFY: Final = "toggle_notify"
SERVICE_SET_OFFSETS: Final = "set_offsets"
SERVICE_TOGGLE_OFFSET: Final = "toggle_offset"
SERVICE_CLEAR_FAVORITES: Final = "clear_favorites"
SERVICE_LIST_FAVORITES: Final = "list_favorites"
SERVICE_SEARCH_NAME: Final = "search_name"
SERVICE_RESCHEDULE: Final = "reschedule"

# Service attributes
ATTR_NAME: Final = "name"
ATTR_OFFSETS: Final = "offsets"
ATTR_OFFSET: Final = "offset"

# Persisted favorite keys
FAV_NAME: Final = "name"
FAV_NOTIFY_ENABLED: Final = "notifyEnabled"
FAV_NOTIFY_TIMINGS: Final = "notifyTimings"

# Persisted ledger keys
LEDGER_ID: Final = "id"
LEDGER_FAVORITE_NAME: Final = "favoriteName"
LEDGER_CELEBRATION_DATE: Final = "celebrationDate"
LEDGER_DAYS_BEFORE: Final = "daysBefore"

# Persisted settings keys
SETTING_LANGUAGE: Final = "language"
SETTING_THEME: Final = "theme"
SETTING_NOTIFICATIONS_ENABLED: Final = "notificationsEnabled"

DOMAIN = "oee_monitor"
VERSION = "0.3.0"

# Persisted device configuration (Home Assistant Store helper)
STORAGE_KEY = f"{DOMAIN}.device_settings"
STORAGE_VERSION = 1

# Config entry keys
CONF_ENTRY_NAME = "entry_name"
CONF_API_URL = "api_url"
CONF_TOKEN = "token"
CONF_POLLING_INTERVAL = "polling_interval"
CONF_PLANT_ID = "plant_id"
CONF_PLANT_NAME = "plant_name"
CONF_SECTOR_ID = "sector_id"
CONF_SECTOR_NAME = "sector_name"
CONF_LINE_ID = "line_id"
CONF_LINE_NAME = "line_name"

DEFAULT_API_URL = "http://localhost:8000/api"

# Update intervals (seconds)
SHIFT_CHECK_INTERVAL = 60    # active shift re-evaluation
POLLING_INTERVAL = 3         # live counters, overridable per config entry
MIN_POLLING_INTERVAL = 1

# HTTP
REQUEST_TIMEOUT = 5          # seconds, multiplied by attempt number for each retry
REFERENCE_REQUEST_ATTEMPTS = 3

# The speed gauge tops out at 120% of the average speed.
SPEED_SCALE_FACTOR = 1.2

# Live-counter parameter names as published by the data source
PARAM_COUNT = "Count"
PARAM_GOOD_COUNT = "GoodCount"
PARAM_THROUGHPUT = "Throughput"
PARAM_INSTANT_SPEED = "InstantSpeed"
PARAM_CYCLE_TIME = "CycleTime"
PARAM_CYCLE_TIME_AVG = "CycleTimeAvg"
PARAM_RUNNING_TIME = "RunningTime"
PARAM_STOPPED_TIME = "StoppedTime"
PARAM_STOPPED_STATUS = "StoppedStatus"

# Production status presentation: label, colour, icon
STATUS_PRODUCING = "PRODUCING"
STATUS_STOPPED = "STOPPED"
STATUS_SETUP = "SETUP"
STATUS_STANDBY = "STANDBY"

STATUS_COLORS: dict[str, str] = {
    STATUS_PRODUCING: "#22c55e",
    STATUS_STOPPED: "#ef4444",
    STATUS_SETUP: "#3b82f6",
    STATUS_STANDBY: "#f59e0b",
}

STATUS_ICONS: dict[str, str] = {
    STATUS_PRODUCING: "mdi:play",
    STATUS_STOPPED: "mdi:stop",
    STATUS_SETUP: "mdi:wrench",
    STATUS_STANDBY: "mdi:pause",
}

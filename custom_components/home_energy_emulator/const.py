"""Constants for the Home Energy Emulator integration."""

DOMAIN = "home_energy_emulator"

# Configuration Keys
CONF_HEARTBEAT_INTERVAL = "heartbeat_interval"
CONF_DEDUP_TOLERANCE_RATIO = "dedup_tolerance_ratio"
CONF_BATTERY_CAPACITY = "battery_capacity_wh"
CONF_FACTORY_CHARGE = "factory_charge_wh"
CONF_GENERATOR_MAX_OUTPUT = "generator_max_output_w"
CONF_GENERATOR_DEFAULT_OUTPUT = "generator_default_output_w"
CONF_HISTORY_RETENTION_HOURS = "history_retention_hours"
CONF_EXECUTION_MODE = "execution_mode"

# Execution modes
EXECUTION_MODE_KEEP_RUNNING = "keep_running"
EXECUTION_MODE_UPDATE_ONCE = "update_once"
EXECUTION_MODE_DO_NOTHING = "do_nothing"
EXECUTION_MODES = [
    EXECUTION_MODE_KEEP_RUNNING,
    EXECUTION_MODE_UPDATE_ONCE,
    EXECUTION_MODE_DO_NOTHING,
]

# Defaults
DEFAULT_NAME = "Home Energy Emulator"
DEFAULT_HEARTBEAT_INTERVAL = 1.0  # seconds
DEFAULT_DEDUP_TOLERANCE_RATIO = 0.1  # fraction of the heartbeat interval
DEFAULT_BATTERY_CAPACITY = 100.0  # Wh
DEFAULT_FACTORY_CHARGE = 50.0  # Wh
DEFAULT_GENERATOR_MAX_OUTPUT = 3500.0  # W
DEFAULT_GENERATOR_DEFAULT_OUTPUT = 3000.0  # W
DEFAULT_HISTORY_RETENTION_HOURS = 24.0
DEFAULT_EXECUTION_MODE = EXECUTION_MODE_KEEP_RUNNING

# Forecast
DEFAULT_FORECAST_STEP = 3.0  # seconds between intermediate samples
DEFAULT_FORECAST_HORIZON = 15 * 60.0  # seconds past now
DEFAULT_FORECAST_CHARGE_THRESHOLD = 0.005  # minimum charge level change

# Health thresholds (time to empty, seconds)
HEALTH_CRITICAL_SECONDS = 60 * 60
HEALTH_WARNING_SECONDS = 12 * 60 * 60

LOW_BATTERY_LEVEL = 0.2

# Storage
STORAGE_KEY = f"{DOMAIN}.storage"
STORAGE_VERSION = 1
STORAGE_SAVE_DELAY = 10  # seconds
PRUNE_INTERVAL_MINUTES = 10

# Dispatcher signals
SIGNAL_UPDATE = f"{DOMAIN}_update"
SIGNAL_ACCESSORIES_ADDED = f"{DOMAIN}_accessories_added"

# Services
SERVICE_SET_GENERATOR_OUTPUT = "set_generator_output"
SERVICE_SCHEDULE_POWER_CHANGE = "schedule_power_change"
SERVICE_TOGGLE_ACCESSORY = "toggle_accessory"
SERVICE_ADD_ACCESSORIES = "add_accessories"
SERVICE_ADD_MORE_APPLIANCES = "add_more_appliances"

# Service attributes
ATTR_POWER = "power"
ATTR_ACCESSORY_ID = "accessory_id"
ATTR_ON = "on"
ATTR_DELAY = "delay"
ATTR_DURATION = "duration"
ATTR_ACCESSORIES = "accessories"
ATTR_NAME = "name"
ATTR_ICON = "icon"
ATTR_POWER_WHEN_ON = "power_when_on"

# Appliances seeded into an empty store
DEFAULT_APPLIANCES = [
    {ATTR_NAME: "Kitchen Lights", ATTR_ICON: "mdi:ceiling-light-multiple", ATTR_POWER_WHEN_ON: 50.0},
    {ATTR_NAME: "Dishwasher", ATTR_ICON: "mdi:dishwasher", ATTR_POWER_WHEN_ON: 1500.0},
    {ATTR_NAME: "Air Conditioning", ATTR_ICON: "mdi:air-conditioner", ATTR_POWER_WHEN_ON: 3500.0},
    {ATTR_NAME: "Oven", ATTR_ICON: "mdi:stove", ATTR_POWER_WHEN_ON: 2200.0},
    {ATTR_NAME: "Living Room Lights", ATTR_ICON: "mdi:floor-lamp", ATTR_POWER_WHEN_ON: 90.0},
]

# Appliances added on request
EXTRA_APPLIANCES = [
    {ATTR_NAME: "Hallway Lights", ATTR_ICON: "mdi:ceiling-light", ATTR_POWER_WHEN_ON: 40.0},
    {ATTR_NAME: "Car Charger", ATTR_ICON: "mdi:ev-station", ATTR_POWER_WHEN_ON: 24000.0},
    {ATTR_NAME: "Humidifier", ATTR_ICON: "mdi:air-humidifier", ATTR_POWER_WHEN_ON: 20.0},
    {ATTR_NAME: "Microwave", ATTR_ICON: "mdi:microwave", ATTR_POWER_WHEN_ON: 1100.0},
]

# Home Assistant bus events (error channel)
EVENT_TICK_FAILED = f"{DOMAIN}_tick_failed"
EVENT_INCONSISTENT_STATE = f"{DOMAIN}_inconsistent_state"

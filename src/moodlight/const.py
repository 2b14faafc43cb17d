from __future__ import annotations

ENV_PREFIX = "MOODLIGHT_"

DEFAULT_BROKER_PORT = 1883
DEFAULT_BLASTER = "/dev/pi-blaster"
DEFAULT_STATE_FILE = "/var/moodlight_state"
DEFAULT_DISCOVERY_PREFIX = "homeassistant"

# Decimal places written per channel; pi-blaster resolves 1000 steps
DRIVER_PRECISION = 3

# Seconds between rainbow ticks
DEFAULT_STEP_DURATION = 0.02
# Seconds for a full power on/off brightness ramp
DEFAULT_TRANSITION_DURATION = 0.5

# Full hue cycle time at rainbow_speed 0 and 100
DEFAULT_RAINBOW_SLOWEST_CYCLE = 60.0
DEFAULT_RAINBOW_FASTEST_CYCLE = 1.0

MAX_BRIGHTNESS = 255
MAX_SATURATION = 100.0
MAX_RAINBOW_SPEED = 100.0
HUE_DEGREES = 360.0

DEFAULT_HUE = 0.0
DEFAULT_SATURATION = 100.0
DEFAULT_BRIGHTNESS = 255
DEFAULT_RAINBOW_SPEED = 50.0

COLOR_MODE_HS = "hs"
STATE_ON = "ON"
STATE_OFF = "OFF"

TOPIC_ROOT = "moodlight"
COMMAND_TOPIC_SUFFIX = "set"
STATE_TOPIC_SUFFIX = "state"

STORE_FILE = "file"
STORE_MQTT = "mqtt"
STATE_STORES = (STORE_FILE, STORE_MQTT)

# Seconds to wait for the broker to acknowledge the final state publish
PUBLISH_TIMEOUT = 5
MQTT_KEEPALIVE = 10

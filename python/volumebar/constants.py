"""
Constants and configuration defaults for the volume bar service.
"""

# MQTT Settings - Default values (can be overridden by configuration)
DEFAULT_MQTT_BROKER = "localhost"
DEFAULT_MQTT_PORT = 1883
DEFAULT_MQTT_USERNAME = ""  # Leave empty if not required
DEFAULT_MQTT_PASSWORD = ""  # Leave empty if not required
DEFAULT_MQTT_CLIENT_ID = "VolumeBar"

# MQTT Topics
MQTT_TOPICS = {
    "request": "volumebar/request",
    "result": "volumebar/result",
    "status": "volumebar/status",
    "command": "volumebar/command"
}

# Volume Settings
DEFAULT_GET_VOLUME_COMMAND = "pactl get-sink-volume @DEFAULT_SINK@ | grep -oP '[0-9]+(?=%)' | head -1"
DEFAULT_SET_VOLUME_COMMAND = "pactl set-sink-volume '@DEFAULT_SINK@' $1%"
VOLUME_PLACEHOLDER = "$1"

# Volume bar settings
DEFAULT_FONT_PATH = "/usr/share/fonts/truetype/freefont/FreeSans.ttf"
SETTLE_DELAY = 0.2  # Seconds between positioning the bar and the first real draw
COMMAND_QUEUE_SIZE = 5
POLL_INTERVAL = 1 / 60  # Seconds between surface refreshes while idle

DEFAULT_CONFIG_FILE = "volumebar_config.json"

# Default configuration structure
DEFAULT_CONFIG = {
    "volume": {
        "normal_volume_max": 100,
        "over_max_volume_max": 200,
        "buffer_size": 5,
        "default_volume": 50,
        "get_volume_command": DEFAULT_GET_VOLUME_COMMAND,
        "set_volume_command": DEFAULT_SET_VOLUME_COMMAND,
        "backend": "shell"  # "shell" or "pycaw"
    },
    "volume_bar": {
        "screen_width": 1920,
        "top": 30,
        "left_offset": 0,
        "percent_pixel_width": 6,
        "height": 80,
        "timeout_ms": 2000,
        "text_size": 64,
        "font_path": DEFAULT_FONT_PATH,
        "run_extra_window_hints": True,
        "bg_color": "00000034",
        "volume_color": "0000FF34",
        "over_max_color": "FF000034",
        "text_color": "FFFFFFFF"
    },
    "mqtt": {
        "broker": DEFAULT_MQTT_BROKER,
        "port": DEFAULT_MQTT_PORT,
        "username": DEFAULT_MQTT_USERNAME,
        "password": DEFAULT_MQTT_PASSWORD,
        "client_id": DEFAULT_MQTT_CLIENT_ID,
        "keepalive": 60,
        "qos": 1,
        "retain": False,
        "reconnect_delay": 5.0
    },
    "topics": MQTT_TOPICS,
    "settings": {
        "enable_mqtt": True,
        "enable_overlay": True,
        "debug": False,
        "log_level": "INFO",
        "log_file": "volumebar.log",
        "max_log_size_mb": 10,
        "backup_log_count": 3
    }
}

# Configuration validation schema
CONFIG_SCHEMA = {
    "volume": {
        "normal_volume_max": {"type": (int, str)},
        "over_max_volume_max": {"type": (int, str)},
        "buffer_size": {"type": (int, str)},
        "default_volume": {"type": (int, str)},
        "get_volume_command": {"type": str, "required": True},
        "set_volume_command": {"type": str, "required": True},
        "backend": {"type": str, "choices": ["shell", "pycaw"]}
    },
    "volume_bar": {
        "screen_width": {"type": (int, str)},
        "top": {"type": (int, str)},
        "left_offset": {"type": (int, str)},
        "percent_pixel_width": {"type": (int, str)},
        "height": {"type": (int, str)},
        "timeout_ms": {"type": (int, str)},
        "text_size": {"type": (int, str)},
        "font_path": {"type": str},
        "run_extra_window_hints": {"type": bool},
        "bg_color": {"type": str},
        "volume_color": {"type": str},
        "over_max_color": {"type": str},
        "text_color": {"type": str}
    },
    "mqtt": {
        "broker": {"type": str, "required": True},
        "port": {"type": int, "min": 1, "max": 65535},
        "username": {"type": str, "required": False},
        "password": {"type": str, "required": False},
        "client_id": {"type": str, "required": True},
        "keepalive": {"type": int, "min": 10, "max": 3600},
        "qos": {"type": int, "min": 0, "max": 2},
        "retain": {"type": bool},
        "reconnect_delay": {"type": (int, float), "min": 1.0, "max": 300.0}
    },
    "topics": {
        "request": {"type": str, "required": True},
        "result": {"type": str, "required": True},
        "status": {"type": str, "required": True},
        "command": {"type": str, "required": True}
    },
    "settings": {
        "enable_mqtt": {"type": bool},
        "enable_overlay": {"type": bool},
        "debug": {"type": bool},
        "log_level": {"type": str, "choices": ["DEBUG", "INFO", "WARNING", "ERROR"]},
        "log_file": {"type": str},
        "max_log_size_mb": {"type": int, "min": 1, "max": 100},
        "backup_log_count": {"type": int, "min": 1, "max": 10}
    }
}

# Optional dependency availability flags
TK_AVAILABLE = False
PYCAW_AVAILABLE = False

try:
    import tkinter
    from PIL import ImageTk
    TK_AVAILABLE = True
except ImportError:
    pass

try:
    import comtypes
    from pycaw.pycaw import AudioUtilities
    PYCAW_AVAILABLE = True
except (ImportError, OSError):
    pass

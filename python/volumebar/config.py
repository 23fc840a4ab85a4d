"""
Configuration management for the volume bar service.
"""

import json
import os
import re
import logging
from dataclasses import dataclass
from .constants import DEFAULT_CONFIG

logger = logging.getLogger(__name__)

HEX_COLOR_PATTERN = re.compile(r"^[0-9a-fA-F]{8}$")


class ConfigManager:
    """Configuration management with validation, persistence and tolerant getters"""

    def __init__(self, config_file="volumebar_config.json", config=None):
        """
        Initialize the configuration manager

        Args:
            config_file (str): Path to the JSON configuration file
            config (dict): Preloaded configuration, merged over the defaults
                instead of reading config_file
        """
        self.config_file = config_file
        if config is not None:
            self.config = self._merge_configs(DEFAULT_CONFIG, config)
        else:
            self.config = self.load_config()
        self.validate_config()
        logger.info(f"Configuration loaded from {config_file}")

    def load_config(self):
        """Load configuration from file"""
        try:
            if os.path.exists(self.config_file):
                with open(self.config_file, 'r') as f:
                    loaded_config = json.load(f)
                # Merge with defaults to ensure all keys exist
                config = self._merge_configs(DEFAULT_CONFIG, loaded_config)
            else:
                config = self._merge_configs(DEFAULT_CONFIG, {})
                self.save_config(config)
                logger.info(f"Created default configuration file: {self.config_file}")

            return config

        except Exception as e:
            logger.error(f"Error loading configuration: {e}")
            logger.info("Using default configuration")
            return self._merge_configs(DEFAULT_CONFIG, {})

    def _merge_configs(self, default, loaded):
        """Recursively merge configurations"""
        result = {
            key: self._merge_configs(value, {}) if isinstance(value, dict) else value
            for key, value in default.items()
        }
        for key, value in loaded.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_configs(result[key], value)
            else:
                result[key] = value
        return result

    def validate_config(self):
        """Validate configuration values using schema"""
        from .constants import CONFIG_SCHEMA

        validation_errors = []

        for section_name, section_schema in CONFIG_SCHEMA.items():
            section_data = self.config.get(section_name)
            if not isinstance(section_data, dict):
                validation_errors.append(f"Invalid section: {section_name}")
                self.config[section_name] = self._merge_configs(DEFAULT_CONFIG[section_name], {})
                continue

            for field_name, field_schema in section_schema.items():
                field_path = f"{section_name}.{field_name}"
                value = section_data.get(field_name)

                # Check required fields
                if field_schema.get("required", False) and value is None:
                    validation_errors.append(f"Required field missing: {field_path}")
                    self._reset_to_default(section_name, field_name)
                    continue

                if value is None:
                    continue

                # Check type
                expected_type = field_schema.get("type")
                if expected_type and not self._is_type(value, expected_type):
                    validation_errors.append(f"Invalid type for {field_path}: got {type(value).__name__}")
                    self._reset_to_default(section_name, field_name)
                    continue

                # Check numeric ranges
                min_val = field_schema.get("min")
                max_val = field_schema.get("max")
                if min_val is not None and value < min_val:
                    validation_errors.append(f"Value too small for {field_path}: {value} < {min_val}")
                    self._reset_to_default(section_name, field_name)
                elif max_val is not None and value > max_val:
                    validation_errors.append(f"Value too large for {field_path}: {value} > {max_val}")
                    self._reset_to_default(section_name, field_name)

                # Check choices
                choices = field_schema.get("choices")
                if choices and value not in choices:
                    validation_errors.append(f"Invalid choice for {field_path}: {value} not in {choices}")
                    self._reset_to_default(section_name, field_name)

        # Log validation results
        if validation_errors:
            for error in validation_errors:
                logger.warning(f"Configuration validation: {error}")
        else:
            logger.debug("Configuration validation completed successfully")
        return validation_errors

    @staticmethod
    def _is_type(value, expected_type):
        """isinstance() that does not let booleans pass as numbers"""
        if isinstance(value, bool):
            return expected_type is bool or (isinstance(expected_type, tuple) and bool in expected_type)
        return isinstance(value, expected_type)

    def _reset_to_default(self, section_name, field_name):
        """Reset a configuration field to its default value"""
        try:
            default_value = DEFAULT_CONFIG[section_name][field_name]
            self.config[section_name][field_name] = default_value
            logger.info(f"Reset {section_name}.{field_name} to default: {default_value}")
        except KeyError:
            logger.error(f"No default value found for {section_name}.{field_name}")

    def save_config(self, config=None):
        """Save configuration to file"""
        try:
            config_to_save = config or self.config
            with open(self.config_file, 'w') as f:
                json.dump(config_to_save, f, indent=2)
            logger.debug(f"Configuration saved to {self.config_file}")
            return True
        except Exception as e:
            logger.error(f"Error saving configuration: {e}")
            return False

    def get(self, key_path, default=None):
        """Get configuration value using dot notation (e.g., 'mqtt.broker')"""
        try:
            keys = key_path.split('.')
            value = self.config
            for key in keys:
                value = value[key]
            return value
        except (KeyError, TypeError):
            return default

    def set(self, key_path, value):
        """Set configuration value using dot notation"""
        try:
            keys = key_path.split('.')
            config = self.config
            for key in keys[:-1]:
                if key not in config:
                    config[key] = {}
                config = config[key]
            config[keys[-1]] = value
            self.save_config()
            logger.debug(f"Configuration updated: {key_path} = {value}")
        except Exception as e:
            logger.error(f"Error setting configuration {key_path}: {e}")

    def get_int(self, section, key, default):
        """
        Get an integer setting, falling back to default on a missing or malformed value

        Numeric strings are accepted so hand-edited files keep working.
        """
        value = self.get(f"{section}.{key}")
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str) and re.fullmatch(r"[+-]?\d+", value.strip()):
            return int(value.strip())
        logger.warning(f"Setting {section}.{key} is not a valid int ({value!r}) using default ({default})")
        return default

    def get_string(self, section, key, default):
        """Get a non-empty string setting, falling back to default"""
        value = self.get(f"{section}.{key}")
        if isinstance(value, str) and value != "":
            return value
        logger.warning(f"Setting {section}.{key} is empty using default ({default})")
        return default

    def get_bool(self, section, key, default):
        """Get a boolean setting; accepts true/false, 1/0 and their string forms"""
        value = self.get(f"{section}.{key}")
        if isinstance(value, bool):
            return value
        if isinstance(value, int):
            return value >= 1
        if isinstance(value, str) and value.strip().lower() in ("true", "1", "false", "0"):
            return value.strip().lower() in ("true", "1")
        logger.warning(f"Setting {section}.{key} is not a valid bool ({value!r}) using default ({default})")
        return default

    def get_color(self, section, key, default):
        """
        Get an RRGGBBAA hex color setting

        Args:
            section (str): Config section
            key (str): Field name
            default (str): RRGGBBAA fallback used when the value is malformed

        Returns:
            tuple: (r, g, b, a) with each channel 0-255
        """
        value = self.get(f"{section}.{key}")
        if not isinstance(value, str) or not HEX_COLOR_PATTERN.match(value):
            logger.warning(f"Setting {section}.{key} is not a valid hex color ({value!r}) using default ({default})")
            value = default
        return parse_hex_color(value)

    def get_mqtt_config(self):
        """Get MQTT configuration as a dictionary"""
        return self.config.get("mqtt", {})

    def get_topics(self):
        """Get MQTT topics configuration"""
        return self.config.get("topics", {})

    def get_settings(self):
        """Get application settings"""
        return self.config.get("settings", {})


def parse_hex_color(value):
    """Convert an RRGGBBAA hex string to an (r, g, b, a) tuple"""
    color = int(value, 16)
    return (
        (color >> 24) & 0xFF,
        (color >> 16) & 0xFF,
        (color >> 8) & 0xFF,
        color & 0xFF,
    )


@dataclass(frozen=True)
class VolumeSettings:
    """Resolved, normalized volume and volume bar settings (immutable for the process lifetime)"""
    normal_volume_max: int = 100
    over_max_volume_max: int = 200
    buffer_size: int = 5
    default_volume: int = 50
    get_volume_command: str = ""
    set_volume_command: str = ""
    backend: str = "shell"
    screen_width: int = 1920
    bar_top: int = 30
    bar_left_offset: int = 0
    percent_pixel_width: int = 6
    bar_height: int = 80
    bar_timeout_ms: int = 2000
    text_size: int = 64
    font_path: str = ""
    run_extra_window_hints: bool = True
    bg_color: tuple = (0x00, 0x00, 0x00, 0x34)
    volume_color: tuple = (0x00, 0x00, 0xFF, 0x34)
    over_max_color: tuple = (0xFF, 0x00, 0x00, 0x34)
    text_color: tuple = (0xFF, 0xFF, 0xFF, 0xFF)

    @property
    def bar_width(self):
        """Width of the whole bar in pixels"""
        return self.percent_pixel_width * self.over_max_volume_max

    @property
    def bar_left(self):
        """X position that centers the bar on the screen"""
        return self.bar_left_offset + (self.screen_width - self.bar_width) // 2


def load_volume_settings(config_manager):
    """
    Resolve VolumeSettings from the configuration

    Values are read in dependency order so each normalization can use the
    fields resolved before it.

    Args:
        config_manager: Configuration manager instance

    Returns:
        VolumeSettings: The normalized settings
    """
    defaults = DEFAULT_CONFIG["volume"]
    bar_defaults = DEFAULT_CONFIG["volume_bar"]
    get_int = config_manager.get_int

    normal_max = max(get_int("volume", "normal_volume_max", defaults["normal_volume_max"]), 1)
    buffer_size = max(get_int("volume", "buffer_size", defaults["buffer_size"]), 0)
    over_max = max(get_int("volume", "over_max_volume_max", defaults["over_max_volume_max"]), normal_max)
    default_volume = max(0, min(get_int("volume", "default_volume", defaults["default_volume"]), over_max))
    bar_height = max(get_int("volume_bar", "height", bar_defaults["height"]), 1)
    bar_top = get_int("volume_bar", "top", bar_defaults["top"])
    timeout_ms = max(get_int("volume_bar", "timeout_ms", bar_defaults["timeout_ms"]), 1)
    left_offset = get_int("volume_bar", "left_offset", bar_defaults["left_offset"])
    pixel_width = max(get_int("volume_bar", "percent_pixel_width", bar_defaults["percent_pixel_width"]), 1)
    screen_width = max(get_int("volume_bar", "screen_width", bar_defaults["screen_width"]), over_max * pixel_width)
    text_size = max(get_int("volume_bar", "text_size", bar_defaults["text_size"]), 1)

    settings = VolumeSettings(
        normal_volume_max=normal_max,
        over_max_volume_max=over_max,
        buffer_size=buffer_size,
        default_volume=default_volume,
        get_volume_command=config_manager.get_string("volume", "get_volume_command", defaults["get_volume_command"]),
        set_volume_command=config_manager.get_string("volume", "set_volume_command", defaults["set_volume_command"]),
        backend=config_manager.get_string("volume", "backend", defaults["backend"]),
        screen_width=screen_width,
        bar_top=bar_top,
        bar_left_offset=left_offset,
        percent_pixel_width=pixel_width,
        bar_height=bar_height,
        bar_timeout_ms=timeout_ms,
        text_size=text_size,
        font_path=config_manager.get_string("volume_bar", "font_path", bar_defaults["font_path"]),
        run_extra_window_hints=config_manager.get_bool(
            "volume_bar", "run_extra_window_hints", bar_defaults["run_extra_window_hints"]),
        bg_color=config_manager.get_color("volume_bar", "bg_color", bar_defaults["bg_color"]),
        volume_color=config_manager.get_color("volume_bar", "volume_color", bar_defaults["volume_color"]),
        over_max_color=config_manager.get_color("volume_bar", "over_max_color", bar_defaults["over_max_color"]),
        text_color=config_manager.get_color("volume_bar", "text_color", bar_defaults["text_color"]),
    )
    logger.debug(f"Volume settings resolved: {settings}")
    return settings

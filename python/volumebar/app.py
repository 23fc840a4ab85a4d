"""
Main application coordinator for the volume bar service.
"""

import time
import threading
import logging
from .config import ConfigManager
from .constants import DEFAULT_CONFIG_FILE, TK_AVAILABLE
from .controller import VolumeController
from .diagnostics import DiagnosticLogger
from .mqtt_client import MQTTVolumeClient
from .overlay import VolumeOverlay
from .surface import PlatformHints, TkOverlaySurface

logger = logging.getLogger(__name__)


class VolumeBarApp:
    """Owns every component and ties their lifetimes to the process"""

    def __init__(self, config_file=DEFAULT_CONFIG_FILE):
        """
        Initialize the application

        Args:
            config_file (str): Path to configuration file
        """
        self.config_file = config_file
        self.running = False

        # Component instances
        self.config_manager = None
        self.diagnostic_logger = None
        self.overlay = None
        self.volume_controller = None
        self.mqtt_client = None

        # Threading
        self.mqtt_thread = None

        logger.info("Volume Bar Application initializing...")

    def initialize_components(self, enable_overlay=True, enable_mqtt=True):
        """
        Initialize all application components

        Args:
            enable_overlay (bool): Create the on-screen volume bar
            enable_mqtt (bool): Create the MQTT front end

        Returns:
            bool: True if every requested component was created
        """
        try:
            self.config_manager = ConfigManager(self.config_file)
            logger.info("Configuration manager initialized")

            # This sets up logging
            self.diagnostic_logger = DiagnosticLogger(self.config_manager)

            settings = self.config_manager.get_settings()
            if enable_overlay and settings.get("enable_overlay", True):
                if TK_AVAILABLE:
                    self.overlay = VolumeOverlay(TkOverlaySurface, PlatformHints())
                    logger.info("Volume bar initialized")
                else:
                    logger.warning("Volume bar requested but tkinter is not available")

            self.volume_controller = VolumeController(self.config_manager, overlay=self.overlay)
            logger.info("Volume controller initialized")

            if enable_mqtt and settings.get("enable_mqtt", True):
                self.mqtt_client = MQTTVolumeClient(self.volume_controller, self.config_manager)
                logger.info("MQTT client initialized")

            logger.info("All components initialized successfully")
            return True

        except Exception as e:
            logger.error(f"Error initializing components: {e}")
            if self.diagnostic_logger:
                self.diagnostic_logger.log_error_event("initialization_error", str(e))
            return False

    def start(self):
        """Start the application; blocks until stop() or Ctrl+C"""
        try:
            if self.config_manager is None:
                if not self.initialize_components():
                    logger.error("Failed to initialize application components")
                    return False

            self.running = True
            logger.info("Starting Volume Bar Application...")

            if self.overlay:
                self.overlay.start()

            if self.mqtt_client:
                self.mqtt_thread = threading.Thread(target=self._run_mqtt_client, name="MQTTClient", daemon=True)
                self.mqtt_thread.start()
                logger.info("MQTT client started in background")
            else:
                logger.info("MQTT client is disabled")

            self._run_console_mode()
            return True

        except KeyboardInterrupt:
            logger.info("Application interrupted by user")
            return True
        except Exception as e:
            logger.error(f"Error starting application: {e}")
            if self.diagnostic_logger:
                self.diagnostic_logger.log_error_event("startup_error", str(e))
            return False
        finally:
            self.stop()

    def apply_once(self, new_volume):
        """
        Apply a single request without starting the front end

        Args:
            new_volume (str): Volume request text

        Returns:
            str: The result text
        """
        if self.volume_controller is None:
            if not self.initialize_components(enable_overlay=False, enable_mqtt=False):
                return "Failed to initialize application components"
        return self.volume_controller.handle_volume_request(new_volume)

    def _run_mqtt_client(self):
        """Run MQTT client in background thread"""
        try:
            self.mqtt_client.start()
        except Exception as e:
            logger.error(f"Error in MQTT client thread: {e}")
            if self.diagnostic_logger:
                self.diagnostic_logger.log_error_event("mqtt_thread_error", str(e))

    def _run_console_mode(self):
        """Idle until stopped"""
        logger.info("Running. Press Ctrl+C to quit.")
        while self.running:
            time.sleep(0.5)

    def stop(self):
        """Stop the application gracefully"""
        if self.config_manager is None:
            return
        try:
            logger.info("Stopping Volume Bar Application...")
            self.running = False

            if self.mqtt_client:
                self.mqtt_client.stop()
            if self.mqtt_thread and self.mqtt_thread.is_alive():
                self.mqtt_thread.join(timeout=5)

            # The window loop only ends on CLOSE_WINDOW
            if self.overlay:
                self.overlay.close()
                logger.info("Volume bar closed")

            if self.diagnostic_logger:
                self.diagnostic_logger.cleanup()

            logger.info("Application stopped successfully")

        except Exception as e:
            logger.error(f"Error during application shutdown: {e}")

    def get_status(self):
        """Get current application status"""
        return {
            "running": self.running,
            "components": {
                "config_manager": self.config_manager is not None,
                "volume_bar": self.overlay is not None and self.overlay.is_running(),
                "mqtt_client": self.mqtt_client is not None and self.mqtt_client.connected
            },
            "volume": self.volume_controller.get_status() if self.volume_controller else None
        }

    def is_running(self):
        """Check if application is running"""
        return self.running

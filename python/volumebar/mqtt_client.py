"""
MQTT front end: volume requests in, text results out.
"""

import json
import time
import logging
import paho.mqtt.client as mqtt

logger = logging.getLogger(__name__)


class MQTTVolumeClient:
    """MQTT client dispatching volume requests to the volume controller"""

    def __init__(self, volume_controller, config_manager):
        """
        Initialize MQTT client

        Args:
            volume_controller: Volume controller instance
            config_manager: Configuration manager instance
        """
        self.volume_controller = volume_controller
        self.config_manager = config_manager
        self.connected = False
        self.running = False

        # Get configuration
        mqtt_config = config_manager.get_mqtt_config()
        self.topics = config_manager.get_topics()

        self.broker = mqtt_config.get("broker")
        self.port = mqtt_config.get("port", 1883)
        self.username = mqtt_config.get("username", "")
        self.password = mqtt_config.get("password", "")
        self.client_id = mqtt_config.get("client_id", "VolumeBar")
        self.keepalive = mqtt_config.get("keepalive", 60)
        self.qos = mqtt_config.get("qos", 1)
        self.retain = mqtt_config.get("retain", False)
        self.reconnect_delay = mqtt_config.get("reconnect_delay", 5.0)

        # Initialize MQTT client
        self.client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2, client_id=self.client_id)

        # Set callbacks
        self.client.on_connect = self.on_connect
        self.client.on_disconnect = self.on_disconnect
        self.client.on_message = self.on_message

        # Set authentication if provided
        if self.username and self.password:
            self.client.username_pw_set(self.username, self.password)

        # Set will message for clean disconnection
        will_payload = json.dumps({"status": "offline", "client_id": self.client_id})
        self.client.will_set(self.topics.get("status"), will_payload, retain=self.retain)

        logger.info(f"MQTT client initialized for broker {self.broker}:{self.port}")

    def connect(self):
        """Connect to MQTT broker"""
        try:
            if not self.broker:
                logger.error("MQTT broker not configured")
                return False

            logger.info(f"Connecting to MQTT broker at {self.broker}:{self.port}...")
            self.client.connect(self.broker, self.port, self.keepalive)
            return True
        except Exception as e:
            logger.error(f"Failed to connect to MQTT broker: {e}")
            return False

    def on_connect(self, client, userdata, flags, reason_code, properties=None):
        """Callback for when client connects to broker"""
        if reason_code == 0:
            self.connected = True
            logger.info("Connected to MQTT broker successfully")

            for topic in (self.topics.get("request"), self.topics.get("command")):
                if topic:
                    client.subscribe(topic, self.qos)
                    logger.info(f"Subscribed to {topic}")

            self.publish_status("online")
        else:
            logger.error(f"Connection failed with code {reason_code}")
            self.connected = False

    def on_disconnect(self, client, userdata, disconnect_flags, reason_code, properties=None):
        """Callback for when client disconnects from broker"""
        self.connected = False
        if reason_code != 0:
            logger.warning(f"Unexpected disconnection (code: {reason_code}), attempting to reconnect...")
        else:
            logger.info("Disconnected from MQTT broker")

    def on_message(self, client, userdata, msg):
        """
        Callback for when a message is received

        Args:
            client: MQTT client instance
            userdata: User data
            msg: MQTT message
        """
        try:
            topic = msg.topic
            payload = msg.payload.decode('utf-8', errors='replace').strip()

            logger.debug(f"Received message on {topic}: {payload}")

            if topic == self.topics.get("request"):
                self.handle_volume_request(payload)
            elif topic == self.topics.get("command"):
                self.handle_command(payload)

        except Exception as e:
            logger.error(f"Error processing message: {e}")

    def handle_volume_request(self, payload):
        """
        Apply a volume request and publish the result text

        Args:
            payload (str): "55", "+5" or "-5"; empty means missing

        Returns:
            str: The result text
        """
        start_time = time.time()
        result = self.volume_controller.handle_volume_request(payload or None)
        logger.info(f"NewVolume={payload} :: {result} ({time.time() - start_time:.2f}s)")

        topic = self.topics.get("result")
        if topic:
            self.client.publish(topic, result, qos=self.qos)
        return result

    def handle_command(self, command):
        """
        Handle special commands

        Args:
            command (str): Command string
        """
        command = command.upper()

        if command == "STATUS":
            self.publish_status("online")
        elif command == "GETVOLUME":
            volume = self.volume_controller.get_current_volume()
            topic = self.topics.get("result")
            if topic:
                self.client.publish(topic, str(volume), qos=self.qos)
            logger.info(f"Published current volume: {volume}")
        else:
            logger.warning(f"Unknown command: {command}")

    def publish_status(self, status):
        """
        Publish service status to MQTT

        Args:
            status (str): Status message
        """
        try:
            status_data = {
                "status": status,
                "client_id": self.client_id,
                "timestamp": time.time()
            }
            status_data.update(self.volume_controller.get_status())

            topic = self.topics.get("status")
            if topic:
                self.client.publish(topic, json.dumps(status_data),
                                    qos=self.qos, retain=self.retain)
                logger.debug(f"Status published: {status_data}")
        except Exception as e:
            logger.error(f"Error publishing status: {e}")

    def start(self):
        """Connect (retrying until stopped) and run the network loop; blocks"""
        self.running = True
        logger.info("Starting MQTT client...")

        while self.running and not self.connect():
            time.sleep(self.reconnect_delay)
        if not self.running:
            return

        try:
            # Reconnects automatically after the first successful connect
            self.client.loop_forever(retry_first_connection=True)
        except Exception as e:
            logger.error(f"Error in MQTT loop: {e}")
        finally:
            self.running = False

    def stop(self):
        """Stop MQTT client"""
        try:
            self.running = False
            if self.connected:
                self.publish_status("offline")
            self.client.disconnect()
            logger.info("MQTT client stopped")
        except Exception as e:
            logger.error(f"Error stopping MQTT client: {e}")

    def get_connection_status(self):
        """Get current connection status"""
        return {
            "connected": self.connected,
            "running": self.running,
            "broker": self.broker,
            "port": self.port,
            "client_id": self.client_id
        }

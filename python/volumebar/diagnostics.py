"""
Logging setup and runtime diagnostics for the volume bar service.
"""

import json
import time
import platform
import threading
import logging
import logging.handlers
import psutil

logger = logging.getLogger(__name__)


class DiagnosticLogger:
    """Logging with file rotation, error-event counting and process diagnostics"""

    def __init__(self, config_manager, setup=True):
        """
        Initialize diagnostic logger

        Args:
            config_manager: Configuration manager instance
            setup (bool): Install the root logging handlers
        """
        self.config = config_manager
        self.error_counts = {}
        self.start_time = time.time()
        self.lock = threading.Lock()

        if setup:
            self.setup_logging()

        logger.info("Diagnostic logger initialized")

    def setup_logging(self):
        """Setup logging with file rotation"""
        try:
            settings = self.config.get_settings()

            log_level = settings.get("log_level", "INFO")
            log_file = settings.get("log_file", "volumebar.log")
            max_size = settings.get("max_log_size_mb", 10) * 1024 * 1024
            backup_count = settings.get("backup_log_count", 3)
            debug_mode = settings.get("debug", False)

            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )

            file_handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=max_size,
                backupCount=backup_count,
                encoding='utf-8'
            )
            file_handler.setFormatter(formatter)

            console_handler = logging.StreamHandler()
            console_handler.setFormatter(logging.Formatter(
                '%(asctime)s - %(levelname)s - %(message)s',
                datefmt='%H:%M:%S'
            ))

            if debug_mode:
                log_level_obj = logging.DEBUG
            else:
                log_level_obj = getattr(logging, log_level.upper(), logging.INFO)

            root_logger = logging.getLogger()
            root_logger.setLevel(log_level_obj)
            file_handler.setLevel(log_level_obj)
            console_handler.setLevel(log_level_obj)

            # Clear existing handlers and add new ones
            root_logger.handlers.clear()
            root_logger.addHandler(file_handler)
            root_logger.addHandler(console_handler)

            self.log_system_info()
            logger.info(f"Logging initialized - Level: {logging.getLevelName(log_level_obj)}, File: {log_file}")

        except Exception as e:
            print(f"Error setting up logging: {e}")
            # Fallback to basic logging
            logging.basicConfig(
                level=logging.INFO,
                format='%(asctime)s - %(levelname)s - %(message)s'
            )

    def log_system_info(self):
        """Log system information at startup"""
        try:
            system_info = {
                "platform": platform.platform(),
                "python_version": platform.python_version(),
                "cpu_count": psutil.cpu_count(),
                "memory_total_gb": round(psutil.virtual_memory().total / (1024**3), 2)
            }
            logger.info(f"System Information: {json.dumps(system_info)}")
        except Exception as e:
            logger.error(f"Error logging system info: {e}")

    def log_error_event(self, error_type, error_message, context=None):
        """Log error event with context"""
        with self.lock:
            self.error_counts[error_type] = self.error_counts.get(error_type, 0) + 1
            error_data = {
                "timestamp": time.time(),
                "error_type": error_type,
                "message": str(error_message),
                "count": self.error_counts[error_type],
                "context": context or {}
            }
        logger.error(f"Error event: {json.dumps(error_data)}")

    def get_diagnostic_summary(self):
        """Get diagnostic summary with process information"""
        try:
            with self.lock:
                uptime = time.time() - self.start_time
                process = psutil.Process()
                return {
                    "timestamp": time.time(),
                    "uptime_seconds": uptime,
                    "uptime_formatted": self._format_uptime(uptime),
                    "error_counts": self.error_counts.copy(),
                    "process_info": {
                        "memory_usage_mb": process.memory_info().rss / 1024 / 1024,
                        "cpu_percent": process.cpu_percent(),
                        "thread_count": threading.active_count()
                    }
                }
        except Exception as e:
            logger.error(f"Error getting diagnostic summary: {e}")
            return {"error": str(e)}

    def _format_uptime(self, seconds):
        """Format uptime in human readable format"""
        days = int(seconds // 86400)
        hours = int((seconds % 86400) // 3600)
        minutes = int((seconds % 3600) // 60)
        secs = int(seconds % 60)
        return f"{days}d {hours}h {minutes}m {secs}s"

    def cleanup(self):
        """Log the final diagnostic summary"""
        summary = self.get_diagnostic_summary()
        logger.info(f"Final diagnostic summary: {json.dumps(summary)}")

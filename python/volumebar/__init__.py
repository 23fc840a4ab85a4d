"""
Volumebar - Volume Control Engine with On-Screen Volume Bar
===========================================================

This package turns absolute or relative volume requests into a new system
volume and shows a transient volume bar on screen.

Features:
- Absolute ("55") and relative ("+5", "-10") volume requests
- Buffered crossing of the normal maximum before entering over-max volume
- Shell (pactl) and Windows (pycaw) volume backends
- Click-through, always-on-top volume bar that hides when idle
- MQTT request/result front end with automatic reconnection

Version: 1.0.0
"""

__version__ = "1.0.0"

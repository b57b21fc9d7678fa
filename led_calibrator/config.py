"""
Configuration constants for LED Calibrator.
"""

# Stream settings
STREAM_URL = "rtsp://192.168.0.101"  # Default stream locator
RTSP_TRANSPORT = "tcp"  # Reliable transport for RTSP sessions
OPEN_TIMEOUT_MS = 5000  # Max milliseconds to establish the decode session
READ_TIMEOUT_MS = 5000  # Max milliseconds to wait for a single frame

# Channel order of the decoder output ("bgr" for OpenCV, "rgb" for others)
CHANNEL_ORDER = "bgr"

# Reconnect settings
RECONNECT_INITIAL_DELAY = 0.5  # seconds before the first retry
RECONNECT_MAX_DELAY = 8.0  # backoff cap in seconds
MAX_RECONNECT_ATTEMPTS = 10  # consecutive failed opens before giving up (0 = unlimited)
MAX_CONSECUTIVE_DECODE_FAILURES = 5  # bad reads before the session is reopened
DECODE_RETRY_DELAY = 0.05  # seconds to wait after an isolated bad read

# Detection settings
DETECTION_INTERVAL = 0.1  # seconds between detection cycles
MIN_REGION_AREA = 0.0  # Regions with a zeroth moment below this are dropped

# Threshold bounds, HSV. Hue uses OpenCV's 0-180 scale.
DEFAULT_THRESHOLDS = {
    "lower_h": 40.0,
    "lower_s": 100.0,
    "lower_v": 100.0,
    "upper_h": 70.0,
    "upper_s": 255.0,
    "upper_v": 255.0,
}

THRESHOLD_LIMITS = {
    "lower_h": (0.0, 180.0),
    "lower_s": (0.0, 255.0),
    "lower_v": (0.0, 255.0),
    "upper_h": (0.0, 180.0),
    "upper_s": (0.0, 255.0),
    "upper_v": (0.0, 255.0),
}

# Health settings
FRAME_STALE_SECONDS = 2.0  # No new frame for this long marks the feed stale
RESULT_STALE_INTERVALS = 5  # Detection intervals without a new result before detection is stale

# Queue settings
DISPLAY_QUEUE_SIZE = 1

# Thread settings
THREAD_JOIN_TIMEOUT = 6.0  # seconds, longer than READ_TIMEOUT_MS so a blocked read can finish
QUEUE_GET_TIMEOUT = 0.03  # seconds
STATS_LOG_INTERVAL = 5.0  # seconds between throughput log lines

# UI settings
WINDOW_NAME = "LED Position Calibrator"
SETTINGS_WINDOW_NAME = "Settings"
REGION_COLOR = (0, 0, 255)  # Red in BGR
REGION_THICKNESS = 1
HUD_POSITION = (10, 25)  # x, y position for HUD text
HUD_LINE_HEIGHT = 22  # Pixels between HUD lines
HUD_FONT = 0  # cv2.FONT_HERSHEY_SIMPLEX
HUD_FONT_SCALE = 0.55
HUD_COLOR = (0, 255, 0)  # Green in BGR
HUD_ALERT_COLOR = (0, 0, 255)  # Red in BGR
HUD_THICKNESS = 1
NO_SIGNAL_SIZE = (640, 480)  # Width x Height of the placeholder image

# Hotkeys
KEY_QUIT = ord('q')
KEY_ESCAPE = 27
KEY_RESET = ord('r')

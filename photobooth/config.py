# config.py
"""
Application configuration constants for the photobooth
"""

# Collage canvas geometry
COLLAGE_WIDTH = 1080
COLLAGE_HEIGHT = 1920
COLLAGE_MARGIN = 48
COLLAGE_GAP = 24
COLLAGE_TEXT_AREA_HEIGHT = 220
BACKGROUND_COLOR = (0, 0, 0)

# Session settings
PHOTO_COUNT = 4
DEFAULT_SECONDS_PER_SHOT = 3
DEFAULT_FACING_MODE = "back"
COUNTDOWN_TICK_MS = 1000
ERROR_RECOVERY_DELAY_MS = 500  # Grace period before returning to the config route

# Background gallery
MAX_BACKGROUNDS = 8
BACKGROUND_MAX_WIDTH = COLLAGE_WIDTH
BACKGROUND_MAX_HEIGHT = COLLAGE_HEIGHT
BACKGROUND_JPEG_QUALITY = 0.92
BACKGROUND_MAX_FILE_BYTES = 20 * 1024 * 1024

# Export defaults
DEFAULT_OUTPUT_FORMAT = "jpeg"
DEFAULT_QUALITY = 0.95
EXPORT_FILENAME_PREFIX = "photobooth"
EXPORT_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"
EXPORT_DIR = "exports"

# Camera capture
CAPTURE_JPEG_QUALITY = 92
WEBCAM_DEVICE_INDEX = 0
WEBCAM_FRAME_WIDTH = 1280
WEBCAM_FRAME_HEIGHT = 720

# Persistence
CONFIG_KEY = "photobooth_config"
SETTINGS_ORGANIZATION = "Photobooth"
SETTINGS_APPLICATION = "photobooth"

# Preview overlay
PREVIEW_OUTLINE_COLOR = (255, 255, 255)
PREVIEW_OUTLINE_WIDTH = 2

# User-visible messages
MSG_CAMERA_START_FAILED = "Could not start the camera."
MSG_CAPTURE_FAILED = "Photo capture failed."

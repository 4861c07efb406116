import os
import sys

def get_base_path():
    """Get base path for both development and packaged executable"""
    if getattr(sys, 'frozen', False):
        # Running as compiled executable
        base = os.path.dirname(sys.executable)
    else:
        # Running in development
        base = os.path.dirname(os.path.dirname(__file__))
    return base

def get_data_dir():
    """Get writable data directory for logs"""
    if getattr(sys, 'frozen', False):
        # For packaged app, use executable directory (writable by user)
        return os.path.dirname(sys.executable)
    return os.path.dirname(os.path.dirname(__file__))

def _env_int(name, default):
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        print(f"[CONFIG] Ignoring invalid {name}={value!r}, using {default}")
        return default

def _env_flag(name, default):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')

# Base path for the application
BASE_PATH = get_base_path()
DATA_DIR = get_data_dir()

# Backend configuration
API_BASE_URL = (os.getenv("EXAM_API_URL") or "http://localhost:5000/api").rstrip('/')
REQUEST_TIMEOUT = _env_int("EXAM_REQUEST_TIMEOUT", 10)  # seconds, per backend call

# Logging
LOG_DIR = os.getenv("EXAM_LOG_DIR") or os.path.join(DATA_DIR, 'logs')

# Exam settings
DEFAULT_EXAM_DURATION = 60  # minutes, used when a submission carries no time
TIMER_TICK_SECONDS = 1
TIME_WARNINGS = (600, 300, 60)  # seconds remaining
OPTION_LETTERS = ["(A)", "(B)", "(C)", "(D)"]

# Proctoring
ENABLE_FULLSCREEN_LOCK = _env_flag("EXAM_ENABLE_FULLSCREEN", True)
# What to do when the test-taker leaves full-screen: notify | reengage | pause
FULLSCREEN_EXIT_POLICY = (os.getenv("EXAM_FULLSCREEN_POLICY") or "notify").strip().lower()

# UI Settings
EXAM_COLORS = {
    'primary': '#3182ce',
    'primary_light': '#63b3ed',
    'success': '#38a169',
    'error': '#e53e3e',
    'warning': '#d69e2e',
    'answered': '#38a169',
    'unanswered': '#e2e8f0',
    'current': '#3182ce',
    'surface': '#ffffff',
    'background': '#f7fafc',
    'border': '#e2e8f0',
    'text_primary': '#1a202c',
    'text_secondary': '#718096'
}

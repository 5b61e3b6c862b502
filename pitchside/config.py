"""
Configuration constants for Pitchside
"""
import os

# Storage directory for the JSON collections
DATA_DIR = os.environ.get('DATA_DIR', 'data')

# Sign-in codes
OTP_LENGTH = int(os.environ.get('OTP_LENGTH', '6'))
OTP_EXPIRY_MINUTES = int(os.environ.get('OTP_EXPIRY_MINUTES', '10'))

# Club invites
INVITE_EXPIRY_DAYS = int(os.environ.get('INVITE_EXPIRY_DAYS', '7'))

# Base URL used in invite emails
APP_BASE_URL = os.environ.get('APP_BASE_URL', 'http://localhost:8080').rstrip('/')

# Support email - can be overridden by environment variable
SUPPORT_EMAIL = os.environ.get('SUPPORT_EMAIL', 'support@pitchside.app')

# Pagination defaults for analytics lists
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


def is_production() -> bool:
    return os.environ.get('FLASK_ENV') == 'production'


def smtp_enabled() -> bool:
    return os.environ.get('SMTP_ENABLED', '').lower() in ('true', '1', 'on')

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./labbooking.db")

# Booking policy
# Faculty (and admins) may not cancel a booking inside this window before the slot starts
CANCELLATION_LEAD_HOURS = float(os.getenv("CANCELLATION_LEAD_HOURS", "2"))
# How far ahead the available-slots listing looks by default
SLOT_ADVANCE_DAYS = int(os.getenv("SLOT_ADVANCE_DAYS", "30"))
DEFAULT_LAB_CAPACITY = int(os.getenv("DEFAULT_LAB_CAPACITY", "30"))

# Background sweep that completes lapsed slots and bookings
STATUS_SWEEP_INTERVAL_MINUTES = int(os.getenv("STATUS_SWEEP_INTERVAL_MINUTES", "30"))

# Booking locks - seconds a (lab, date) lock may be held before Redis expires it
BOOKING_LOCK_TIMEOUT = int(os.getenv("BOOKING_LOCK_TIMEOUT", "10"))
BOOKING_LOCK_REDIS_ENABLED = os.getenv("BOOKING_LOCK_REDIS_ENABLED", "true").lower() == "true"

# Resend Email Configuration
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS", "Lab Booking System <noreply@labbooking.com>")
EMAIL_NOTIFICATIONS_ENABLED = os.getenv("EMAIL_NOTIFICATIONS_ENABLED", "true").lower() == "true"

# Frontend base URL for links in emails
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

# Admin created on startup when no user has this email (fresh installs)
BOOTSTRAP_ADMIN_EMAIL = os.getenv("BOOTSTRAP_ADMIN_EMAIL")
BOOTSTRAP_ADMIN_NAME = os.getenv("BOOTSTRAP_ADMIN_NAME", "Administrator")

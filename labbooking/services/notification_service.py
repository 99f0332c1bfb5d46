"""
Booking notifications
Delivery is best effort: a failed email never undoes a committed booking
"""

import logging
from typing import Optional

from ..config import CANCELLATION_LEAD_HOURS, EMAIL_NOTIFICATIONS_ENABLED
from ..email_service import send_booking_confirmation

logger = logging.getLogger(__name__)


class NullNotifier:
    """Drops every notification; used when email is disabled"""

    def notify_booking_created(self, faculty_contact: dict, slot_summary: dict) -> dict:
        return {"email_sent": False, "email_error": None}


class EmailNotifier:
    """Sends booking notifications through Resend"""

    def notify_booking_created(self, faculty_contact: dict, slot_summary: dict) -> dict:
        """
        Send the booking confirmation email

        Args:
            faculty_contact: name and email of the faculty member
            slot_summary: Slot.summary() of the booked slot

        Returns:
            Dict with email_sent status and the error message, if any
        """
        result = {"email_sent": False, "email_error": None}
        email: Optional[str] = faculty_contact.get("email")

        if not email:
            logger.debug(
                f"⚠️ No email address for booking notification to {faculty_contact.get('name')}"
            )
            return result

        try:
            logger.info(f"📧 Sending booking confirmation to {email}")
            send_booking_confirmation(
                to=email,
                faculty_name=faculty_contact.get("name") or "there",
                lab_name=slot_summary.get("lab_name") or f"Lab {slot_summary.get('lab_id')}",
                slot_date=slot_summary["date"],
                start_time=slot_summary["start_time"],
                end_time=slot_summary["end_time"],
                location=slot_summary.get("location"),
                cancellation_lead_hours=slot_summary.get(
                    "cancellation_lead_hours", CANCELLATION_LEAD_HOURS
                ),
            )
            result["email_sent"] = True
            logger.info(f"✅ Booking confirmation sent to {email}")
        except Exception as e:
            result["email_error"] = str(e)
            logger.error(f"❌ Failed to send booking confirmation to {email}: {e}")

        return result


def get_notifier():
    """FastAPI dependency; override in tests"""
    if EMAIL_NOTIFICATIONS_ENABLED:
        return EmailNotifier()
    return NullNotifier()

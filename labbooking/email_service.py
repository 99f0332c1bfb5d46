"""
Email Service using Resend
Provides email functionality using MJML templates for responsive design
"""

import logging
from typing import Optional, Union

import resend
from mjml import mjml_to_html

from .config import CANCELLATION_LEAD_HOURS, EMAIL_FROM_ADDRESS, RESEND_API_KEY
from .email_templates import booking_confirmation_template

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    try:
        result = mjml_to_html(mjml_content)
        # mjml_to_html returns a dict with 'html' and 'errors' keys
        if isinstance(result, dict):
            if result.get("errors"):
                logger.warning(f"MJML compilation warnings: {result['errors']}")
            return result.get("html", "")
        return str(result)
    except Exception as e:
        logger.error(f"MJML compilation error: {e}")
        raise Exception(f"Failed to compile MJML template: {str(e)}") from e


def send_email(
    to: Union[str, list[str]],
    subject: str,
    mjml_content: str,
    from_address: Optional[str] = None,
) -> dict:
    """
    Send an email through Resend

    Args:
        to: Recipient email(s)
        subject: Email subject line
        mjml_content: MJML template content (will be compiled to HTML)
        from_address: Optional custom from address

    Returns:
        Send response dict
    """
    if not RESEND_API_KEY:
        logger.error("❌ No email service configured - RESEND_API_KEY missing")
        raise Exception("Email service not configured")

    html_content = compile_mjml_to_html(mjml_content)
    recipients = [to] if isinstance(to, str) else to

    try:
        logger.info(f"📧 Sending email via Resend to: {recipients}")
        response = resend.Emails.send(
            {
                "from": from_address or EMAIL_FROM_ADDRESS,
                "to": recipients,
                "subject": subject,
                "html": html_content,
            }
        )
        logger.info(f"✅ Email sent successfully via Resend: {response}")
        return response
    except Exception as e:
        logger.error(f"❌ Email send error to {recipients}: {e}")
        raise Exception(f"Failed to send email: {str(e)}") from e


def send_booking_confirmation(
    to: str,
    faculty_name: str,
    lab_name: str,
    slot_date: str,
    start_time: str,
    end_time: str,
    location: Optional[str] = None,
    cancellation_lead_hours: float = CANCELLATION_LEAD_HOURS,
) -> dict:
    """Send booking confirmation to the faculty member who booked"""
    mjml_content = booking_confirmation_template(
        faculty_name=faculty_name,
        lab_name=lab_name,
        slot_date=slot_date,
        start_time=start_time,
        end_time=end_time,
        location=location,
        cancellation_lead_hours=cancellation_lead_hours,
    )
    return send_email(
        to=to,
        subject=f"Lab Booking Confirmed - {lab_name} on {slot_date}",
        mjml_content=mjml_content,
    )

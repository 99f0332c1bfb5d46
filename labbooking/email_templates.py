"""
MJML Email Templates
Templates for booking notifications, compiled to HTML by email_service
"""

from html import escape
from typing import Optional

from .config import CANCELLATION_LEAD_HOURS, FRONTEND_URL

THEME = {
    "primary": "#2563eb",
    "primary_light": "#dbeafe",
    "background": "#f8fafc",
    "text_primary": "#0f172a",
    "text_secondary": "#334155",
    "text_muted": "#64748b",
    "border": "#e2e8f0",
}


def get_base_template(
    title: str,
    preview_text: str,
    content_sections: str,
    cta_url: Optional[str] = None,
    cta_label: Optional[str] = None,
) -> str:
    """Base MJML template wrapper for all emails"""

    cta_section = ""
    if cta_url and cta_label:
        cta_section = f"""
        <mj-section padding="20px 0">
          <mj-column>
            <mj-button
              href="{cta_url}"
              background-color="{THEME['primary']}"
              color="#ffffff"
              font-weight="600"
              border-radius="8px"
              padding="18px 40px"
              font-size="16px">
              {cta_label}
            </mj-button>
          </mj-column>
        </mj-section>
        """

    return f"""
    <mjml>
      <mj-head>
        <mj-title>{title}</mj-title>
        <mj-preview>{preview_text}</mj-preview>
        <mj-attributes>
          <mj-all font-family="-apple-system, BlinkMacSystemFont, 'Segoe UI', 'Helvetica Neue', Arial, sans-serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <mj-section background-color="#ffffff" padding="40px 40px 48px 40px">
          <mj-column>
            <mj-text font-size="24px" font-weight="600" color="{THEME['text_primary']}" line-height="1.3" padding="0 0 16px 0">
              {title}
            </mj-text>

            {content_sections}
          </mj-column>
        </mj-section>

        {cta_section}

        <mj-section padding="32px 20px">
          <mj-column>
            <mj-text align="center" font-size="13px" color="#94a3b8" padding="0">
              Lab Booking System. You're receiving this because you booked a lab slot.
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def booking_confirmation_template(
    faculty_name: str,
    lab_name: str,
    slot_date: str,
    start_time: str,
    end_time: str,
    location: Optional[str] = None,
    cancellation_lead_hours: float = CANCELLATION_LEAD_HOURS,
) -> str:
    lead_unit = "hour" if cancellation_lead_hours == 1 else "hours"
    location_row = ""
    if location:
        location_row = f"<strong>Location:</strong> {escape(location)}<br/>"

    content = f"""
    <mj-text padding="0 0 16px 0">
      Hi {escape(faculty_name)}, your lab slot is confirmed.
    </mj-text>
    <mj-text background-color="{THEME['primary_light']}" padding="16px" border-radius="8px">
      <strong>Lab:</strong> {escape(lab_name)}<br/>
      {location_row}
      <strong>Date:</strong> {escape(slot_date)}<br/>
      <strong>Time:</strong> {escape(start_time)} - {escape(end_time)}
    </mj-text>
    <mj-text font-size="14px" color="{THEME['text_muted']}" padding="16px 0 0 0">
      Bookings can be cancelled up to {cancellation_lead_hours:g} {lead_unit} before the slot starts.
    </mj-text>
    """

    return get_base_template(
        title="Booking Confirmed",
        preview_text=f"{lab_name} on {slot_date}, {start_time} - {end_time}",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/my-bookings",
        cta_label="View My Bookings",
    )

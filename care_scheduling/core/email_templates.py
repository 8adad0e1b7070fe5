"""HTML email templates for patient appointment emails."""

from datetime import datetime
from html import escape

THEME = {
    "header_bg": "#0f172a",
    "header_text": "#ffffff",
    "background": "#f4f4f9",
    "card_bg": "#ffffff",
    "text": "#333333",
    "label": "#64748b",
    "muted": "#94a3b8",
    "border": "#e2e8f0",
    "link": "#2563eb",
}


def email_layout(title: str, content: str, practice_name: str) -> str:
    """Wrap rendered content in the practice's email layout."""
    year = datetime.now().year
    return f"""<!DOCTYPE html>
<html>
<head>
  <style>
    body {{ font-family: 'Helvetica Neue', Helvetica, Arial, sans-serif; line-height: 1.6; color: {THEME['text']}; background-color: {THEME['background']}; margin: 0; padding: 0; }}
    .container {{ max-width: 600px; margin: 20px auto; background: {THEME['card_bg']}; border-radius: 8px; overflow: hidden; }}
    .header {{ background-color: {THEME['header_bg']}; color: {THEME['header_text']}; padding: 20px; text-align: center; }}
    .header h1 {{ margin: 0; font-size: 24px; font-weight: 600; }}
    .content {{ padding: 30px; }}
    .field {{ margin-bottom: 15px; }}
    .field-label {{ font-weight: bold; color: {THEME['label']}; font-size: 0.9em; text-transform: uppercase; letter-spacing: 0.5px; }}
    .field-value {{ margin-top: 4px; font-size: 16px; }}
    .footer {{ background-color: #f8fafc; padding: 20px; text-align: center; font-size: 12px; color: {THEME['muted']}; border-top: 1px solid {THEME['border']}; }}
    a {{ color: {THEME['link']}; text-decoration: none; }}
  </style>
</head>
<body>
  <div class="container">
    <div class="header">
      <h1>{escape(title)}</h1>
    </div>
    <div class="content">
      {content}
    </div>
    <div class="footer">
      <p>&copy; {year} {escape(practice_name)}. All rights reserved.</p>
      <p>This is an automated message.</p>
    </div>
  </div>
</body>
</html>
"""


def field(label: str, value: str) -> str:
    """Render one label/value block."""
    return f"""
      <div class="field">
        <div class="field-label">{escape(label)}</div>
        <div class="field-value">{escape(value)}</div>
      </div>"""


def appointment_details(
    when: str,
    clinician: str,
    duration_minutes: int,
    location: str,
) -> str:
    """Render the appointment summary shared by every patient email."""
    return "".join(
        [
            field("Date & Time", when),
            field("Clinician", clinician),
            field("Duration", f"{duration_minutes} minutes"),
            field("Location", location),
        ]
    )


def confirmation_template(patient_name: str, details: str, practice_name: str) -> str:
    """Appointment confirmation body."""
    return f"""
      <p>Hi {escape(patient_name)},</p>
      <p>Your appointment with {escape(practice_name)} has been scheduled. Here are the details:</p>
      {details}
      <p>If you need to reschedule, please give us a call.</p>
      <p>Warmly,<br>The {escape(practice_name)} Team</p>"""


def update_template(patient_name: str, details: str, practice_name: str) -> str:
    """Rescheduled appointment body."""
    return f"""
      <p>Hi {escape(patient_name)},</p>
      <p>Your appointment has been updated. Please note the new details:</p>
      {details}
      <p>If this time does not work for you, please give us a call.</p>
      <p>Warmly,<br>The {escape(practice_name)} Team</p>"""


def reminder_template(patient_name: str, details: str, practice_name: str) -> str:
    """Upcoming appointment reminder body."""
    return f"""
      <p>Hi {escape(patient_name)},</p>
      <p>This is a friendly reminder of your upcoming appointment:</p>
      {details}
      <p>If you are unable to keep this appointment, please let us know as soon as possible.</p>
      <p>Warmly,<br>The {escape(practice_name)} Team</p>"""

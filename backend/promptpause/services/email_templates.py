"""
Prompt & Pause Backend — Maintenance Email Templates
=====================================================

What:  Subjects and HTML bodies for the two maintenance notifications.
How:   Plain f-strings around a shared layout. Every interpolated value goes
       through `html.escape`, including the recipient's preferred name and
       the admin-supplied description, notes and improvements.
"""

import html
from datetime import date, datetime, time
from typing import Optional, Sequence

PRIMARY_ACCENT = "#4F46E5"
SECONDARY_ACCENT = "#16A34A"
TEXT_DARK = "#111827"
TEXT_GRAY = "#4B5563"
BG_LIGHT = "#F9FAFB"

COMPLETE_SUBJECT = "Maintenance Complete - All Systems Operational"


def start_subject(scheduled_date: date) -> str:
    return f"Scheduled Maintenance: {scheduled_date.isoformat()}"


def _e(value: object) -> str:
    return html.escape(str(value), quote=True)


def _paragraph(text: str, margin: str = "0 0 16px 0") -> str:
    return (
        f'<p style="color: {TEXT_GRAY}; font-size: 16px; line-height: 1.8; '
        f'margin: {margin};">{text}</p>'
    )


def _layout(title: str, preheader: str, body: str, app_name: str) -> str:
    return f"""<!DOCTYPE html>
<html lang="en">
<head><meta charset="utf-8"><title>{_e(title)}</title></head>
<body style="margin: 0; padding: 0; background: {BG_LIGHT}; font-family: Arial, sans-serif;">
  <span style="display: none; max-height: 0; overflow: hidden;">{_e(preheader)}</span>
  <div style="max-width: 600px; margin: 0 auto; padding: 40px 24px; background: #FFFFFF;">
    {body}
    <p style="color: {TEXT_GRAY}; font-size: 12px; margin: 40px 0 0 0; text-align: center;">
      You are receiving this service notice as a member of {_e(app_name)}.
    </p>
  </div>
</body>
</html>"""


def render_start_email(
    name: str,
    scheduled_date: date,
    start_time: time,
    end_time: time,
    affected_services: Sequence[str],
    app_name: str,
    description: Optional[str] = None,
) -> str:
    window = f"{start_time.strftime('%H:%M')} - {end_time.strftime('%H:%M')} UTC"
    services = "".join(
        f'<li style="margin-bottom: 8px;">{_e(s)}</li>' for s in affected_services
    )

    body = [
        f'<h1 style="color: {PRIMARY_ACCENT}; font-size: 28px; text-align: center;">'
        "Scheduled Maintenance Notice</h1>",
        _paragraph(f"Hi {_e(name)},"),
        _paragraph(
            f"We're writing to let you know about planned maintenance on {_e(app_name)}. "
            "We'll be making improvements so you continue to have the best experience possible.",
            margin="0 0 32px 0",
        ),
        '<div style="background: #FEF3C7; padding: 24px; margin: 32px 0; '
        'border-left: 4px solid #F59E0B; border-radius: 8px;">'
        '<h3 style="margin-top: 0; color: #78350F;">Maintenance Window</h3>'
        f'<p style="color: #78350F; margin: 8px 0;"><strong>Date:</strong> {_e(scheduled_date.isoformat())}</p>'
        f'<p style="color: #78350F; margin: 8px 0;"><strong>Time:</strong> {_e(window)}</p>'
        "</div>",
    ]
    if services:
        body.append(
            f'<div style="background: {BG_LIGHT}; padding: 24px; margin: 32px 0; '
            f'border-left: 4px solid {PRIMARY_ACCENT}; border-radius: 8px;">'
            f'<h3 style="margin-top: 0; color: {TEXT_DARK};">Affected Services</h3>'
            f'<ul style="color: {TEXT_GRAY}; line-height: 1.8; padding-left: 20px;">{services}</ul>'
            "</div>"
        )
    if description:
        body.append(_paragraph(_e(description), margin="32px 0"))
    body.append(
        _paragraph(
            "<strong>Your data is safe:</strong> all your reflections and personal "
            "information remain secure during maintenance.",
            margin="32px 0",
        )
    )
    body.append(
        _paragraph(
            "We apologise for any inconvenience and appreciate your patience "
            f"while we improve {_e(app_name)}.",
            margin="32px 0",
        )
    )

    preheader = f"Scheduled maintenance on {scheduled_date.isoformat()} from {window}"
    return _layout("Scheduled Maintenance Notice", preheader, "\n    ".join(body), app_name)


def render_complete_email(
    name: str,
    completed_at: datetime,
    app_name: str,
    app_url: str,
    improvements: Optional[str] = None,
    notes: Optional[str] = None,
) -> str:
    body = [
        f'<h1 style="color: {SECONDARY_ACCENT}; font-size: 28px; text-align: center;">'
        "Maintenance Complete!</h1>",
        _paragraph(f"Hi {_e(name)},"),
        _paragraph(
            "Great news! Our scheduled maintenance has been completed successfully. "
            f"All {_e(app_name)} services are fully operational again.",
            margin="0 0 32px 0",
        ),
        '<div style="background: #DCFCE7; padding: 24px; margin: 32px 0; '
        'border-left: 4px solid #22C55E; border-radius: 8px; text-align: center;">'
        '<p style="color: #14532D; font-size: 18px; font-weight: 600; margin: 0;">'
        "All Systems Operational</p>"
        f'<p style="color: #15803D; font-size: 14px; margin: 8px 0 0 0;">'
        f"Completed at {_e(completed_at.strftime('%Y-%m-%d %H:%M UTC'))}</p>"
        "</div>",
    ]
    if improvements:
        body.append(
            f'<div style="background: {BG_LIGHT}; padding: 24px; margin: 32px 0; '
            f'border-left: 4px solid {PRIMARY_ACCENT}; border-radius: 8px;">'
            f'<h3 style="margin-top: 0; color: {TEXT_DARK};">What\'s Improved</h3>'
            f"{_paragraph(_e(improvements), margin='16px 0 0 0')}"
            "</div>"
        )
    if notes:
        body.append(_paragraph(_e(notes), margin="32px 0"))
    body.append(
        f'<p style="text-align: center; margin: 40px 0;">'
        f'<a href="{_e(app_url.rstrip("/") + "/dashboard")}" '
        f'style="background: {PRIMARY_ACCENT}; color: #FFFFFF; padding: 12px 24px; '
        'border-radius: 8px; text-decoration: none;">Continue Your Journey</a></p>'
    )

    preheader = f"Maintenance complete - all {app_name} services are operational"
    return _layout("Maintenance Complete", preheader, "\n    ".join(body), app_name)

from __future__ import annotations

import html
from string import Template
from typing import Any, Dict, Mapping, Tuple

# template_id -> (heading, body lines, link variable). $name placeholders come from the queued variables.
TEMPLATES: Dict[str, Tuple[str, Tuple[str, ...], str]] = {
    "DONATION_RESERVED": (
        "Your donation has been reserved",
        (
            "Hi $donorName,",
            'Your donation "$donationTitle" ($quantity $quantityUnit, $category) was reserved by $recipientName on $reservedDate.',
            "Please keep it ready for pickup.",
        ),
        "donationUrl",
    ),
    "RESERVATION_CONFIRMATION": (
        "Reservation confirmed",
        (
            "Hi $recipientName,",
            'You reserved "$donationTitle" ($quantity $quantityUnit) from $donorName.',
            "Pickup address: $pickupAddress",
            "Instructions: $pickupInstructions",
            "Please pick it up before $expiryDate.",
        ),
        "donationUrl",
    ),
    "DONATION_COMPLETED": (
        "Donation completed",
        (
            "Hi $donorName,",
            'Your donation "$donationTitle" ($quantity $quantityUnit, $category) was picked up by $recipientName on $completedDate.',
            "Thank you for helping reduce food waste!",
        ),
        "dashboardUrl",
    ),
}


def render(template_id: str, variables: Mapping[str, Any]) -> Tuple[str, str]:
    """Returns (html, text). Unknown template ids raise KeyError."""
    heading, lines, link_var = TEMPLATES[template_id]
    raw = {k: "" if v is None else str(v) for k, v in (variables or {}).items()}
    text_lines = [Template(line).safe_substitute(raw) for line in lines]
    link = raw.get(link_var, "")

    text = "\n\n".join([heading] + text_lines + ([link] if link else []))

    escaped = {k: html.escape(v) for k, v in raw.items()}
    html_lines = [f"<p>{Template(html.escape(line, quote=False)).safe_substitute(escaped)}</p>" for line in lines]
    link_html = f'<p><a href="{html.escape(link)}">View details</a></p>' if link else ""
    body = f"<h2>{html.escape(heading)}</h2>{''.join(html_lines)}{link_html}"
    return body, text

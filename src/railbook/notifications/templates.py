from __future__ import annotations

from typing import Any

from jinja2 import DictLoader, Environment, StrictUndefined, select_autoescape

_TICKET_HTML = """\
<!DOCTYPE html>
<html>
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <style>
    body { font-family: Arial, sans-serif; line-height: 1.6; color: #374151; background-color: #f9fafb; }
    .container { max-width: 600px; margin: 0 auto; background-color: white; border-radius: 12px; }
    .header { background: #1e3a8a; color: white; padding: 32px 24px; text-align: center; }
    .content { padding: 32px 24px; }
    .info-label { font-size: 12px; color: #6b7280; text-transform: uppercase; }
    .info-value { font-size: 16px; font-weight: bold; color: #1f2937; margin-bottom: 12px; }
    .button { display: inline-block; background: #1e3a8a; color: white; padding: 12px 24px; border-radius: 8px; text-decoration: none; }
    .footer { padding: 24px; text-align: center; font-size: 12px; color: #9ca3af; }
  </style>
</head>
<body>
  <div class="container">
    <div class="header">
      <h1>E-Tiket Kereta Api</h1>
      <p>Tiket #{{ ticket.ticket_number }}</p>
    </div>
    <div class="content">
      <h2>Halo {{ ticket.passenger_name or "Pelanggan" }}!</h2>
      <p>Pemesanan Anda telah dikonfirmasi. Berikut detail perjalanan Anda:</p>
      {% for label, value in details %}
      <div class="info-label">{{ label }}</div>
      <div class="info-value">{{ value }}</div>
      {% endfor %}
      <p><a href="{{ view_url }}" class="button">Lihat Tiket Online</a></p>
      <ul>
        {% for tip in tips %}<li>{{ tip }}</li>{% endfor %}
      </ul>
      <p>E-tiket PDF terlampir pada email ini.</p>
    </div>
    <div class="footer">
      <p>&copy; {{ year }} Railbook. Email ini dikirim otomatis, mohon tidak membalas.</p>
    </div>
  </div>
</body>
</html>
"""

_TICKET_TEXT = """\
E-Tiket Kereta Api
==================

Halo {{ ticket.passenger_name or "Pelanggan" }}!

Pemesanan Anda telah dikonfirmasi. Berikut detail perjalanan Anda:

{% for label, value in details %}{{ label }}: {{ value }}
{% endfor %}
Lihat tiket online: {{ view_url }}

{% for tip in tips %}- {{ tip }}
{% endfor %}
E-tiket PDF terlampir pada email ini.

(c) {{ year }} Railbook.
"""

TRAVEL_TIPS = (
    "Datang minimal 1 jam sebelum keberangkatan",
    "Siapkan kartu identitas yang sesuai dengan data pemesanan",
    "Tunjukkan e-tiket ini saat boarding (cetak atau di ponsel)",
)

_environment = Environment(
    loader=DictLoader({"ticket.html": _TICKET_HTML, "ticket.txt": _TICKET_TEXT}),
    autoescape=select_autoescape(enabled_extensions=("html",), default_for_string=False),
    undefined=StrictUndefined,
)


def render_ticket_email(context: dict[str, Any]) -> tuple[str, str]:
    """Return the (html, text) bodies of the ticket e-mail."""
    context = {"tips": TRAVEL_TIPS, **context}
    html = _environment.get_template("ticket.html").render(**context)
    text = _environment.get_template("ticket.txt").render(**context)
    return html, text

"""HTML email sent to the client with a priced quote.

Rendered with a sandboxed Jinja2 environment from the persisted quote
snapshot; nothing is re-read from the catalogue.
"""

from __future__ import annotations

from jinja2.sandbox import SandboxedEnvironment

from config_models import AppConfig
from models import Quote
from utils import format_date

_env = SandboxedEnvironment(autoescape=True)
_env.filters["money"] = lambda value: f"{value:.2f}"

_QUOTE_EMAIL_HTML = """\
<div style="font-family: Arial, sans-serif; font-size: 14px; color: #222;">
  <h1 style="font-size: 18px;">Devis {{ quote.quote_number }}</h1>
  <p>Bonjour {{ client_name }},</p>
  <p>Veuillez trouver ci-dessous votre devis de la part de <strong>{{ business.name }}</strong>.</p>
  <table style="width: 100%; border-collapse: collapse;">
    <tr>
      <th align="left">Prestation</th><th align="right">Prix</th>
      <th align="right">Qté</th><th align="right">Total</th>
    </tr>
    {% for item in quote.items %}
    <tr>
      <td>{{ item.name }}{% if item.description %}<br><small>{{ item.description }}</small>{% endif %}</td>
      <td align="right">{{ item.price|money }} {{ currency }}</td>
      <td align="right">{{ item.quantity }}</td>
      <td align="right">{{ item.total|money }} {{ currency }}</td>
    </tr>
    {% if item.package_discount %}
    <tr><td colspan="3"><small>Remise forfait</small></td>
      <td align="right">-{{ item.package_discount|money }} {{ currency }}</td></tr>
    {% endif %}
    {% endfor %}
  </table>
  <p>Sous-total : {{ quote.subtotal|money }} {{ currency }}</p>
  {% if quote.package_discounts_total %}<p>Remises forfaits : -{{ quote.package_discounts_total|money }} {{ currency }}</p>{% endif %}
  {% if quote.discount_amount %}<p>Remise : -{{ quote.discount_amount|money }} {{ currency }}</p>{% endif %}
  <p><strong>Total : {{ quote.total|money }} {{ currency }}</strong></p>
  <p>Valable jusqu'au : {{ valid_until or "Non spécifié" }}</p>
  {% if quote.notes %}<p>{{ quote.notes }}</p>{% endif %}
  <hr>
  <p>{{ business.name }}{% if business.email %} · {{ business.email }}{% endif %}
  {% if business.phone %} · {{ business.phone }}{% endif %}<br>{{ business.display_address }}</p>
</div>
"""


def quote_email_subject(quote_number: str, business_name: str) -> str:
    return f"Devis {quote_number} de {business_name}"


def render_quote_email(quote: Quote, app_cfg: AppConfig) -> tuple[str, str]:
    """Return ``(subject, html_body)`` for *quote*."""
    html = _env.from_string(_QUOTE_EMAIL_HTML).render(
        quote=quote,
        business=quote.business,
        client_name=quote.client.full_name,
        currency="€" if app_cfg.currency == "EUR" else app_cfg.currency,
        valid_until=format_date(quote.valid_until, app_cfg.date_format),
    )
    return quote_email_subject(quote.quote_number, quote.business.name), html

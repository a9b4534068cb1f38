from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from django import template
from django.utils.html import format_html

register = template.Library()

STATUS_CLASSES = {
    "pending": "bg-yellow-100 text-yellow-800",
    "in_progress": "bg-blue-100 text-blue-800",
    "completed": "bg-green-100 text-green-800",
    "cancelled": "bg-red-100 text-red-800",
}


@register.filter
def money(value):
    """Two-decimal display; amounts are stored unrounded."""
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        return value
    return f"{amount.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP):,}"


@register.filter
def status_badge(status):
    css = STATUS_CLASSES.get(str(status), "bg-gray-100 text-gray-800")
    label = str(status).replace("_", " ").capitalize()
    return format_html('<span class="px-2 py-1 text-xs rounded-full {}">{}</span>', css, label)

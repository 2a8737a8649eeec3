"""Push payloads and email bodies for expiry notifications."""

from datetime import date
from html import escape

from expiry_tracker.schemas.recipe_suggestion import RecipeSuggestion
from expiry_tracker.services.food_item_service import ExpiringItem

RECIPE_TITLE = "🍳 Recipe ideas for your expiring food!"
FALLBACK_TITLE = "🍎 Use your expiring ingredients!"
RECIPE_EMAIL_SUBJECT = RECIPE_TITLE
FALLBACK_EMAIL_SUBJECT = FALLBACK_TITLE

RECIPE_TAG = "recipe-suggestion"
FALLBACK_TAG = "recipe-suggestion-fallback"

ICON = "/icons/icon-192x192.png"
BADGE = "/icons/badge-72x72.png"

MAX_SUMMARY_INGREDIENTS = 5
MAX_FALLBACK_ITEMS = 3

_EMAIL_WRAPPER = (
    '<div style="font-family: -apple-system, BlinkMacSystemFont, \'Segoe UI\', Roboto, '
    'sans-serif; max-width: 480px; margin: 0 auto; padding: 24px;">'
)
_EMAIL_FOOTER = (
    '<div style="text-align: center; margin-top: 24px;">'
    '<p style="color: #9ca3af; font-size: 12px;">Food Expiry Tracker - Reduce waste, eat well.</p>'
    "</div>"
)


def _push_payload(title: str, body: str, tag: str, notification_type: str, **data) -> dict:
    return {
        "title": title,
        "body": body,
        "icon": ICON,
        "badge": BADGE,
        "tag": tag,
        "data": {"url": "/", "type": notification_type, **data},
    }


def build_recipe_push_payload(recipes: list[RecipeSuggestion], ingredients: list[str]) -> dict:
    """Push payload listing recipe titles and the ingredients they use up."""
    recipe_titles = "\n".join(f"{i}. {recipe.title}" for i, recipe in enumerate(recipes, 1))
    summary = ", ".join(ingredients[:MAX_SUMMARY_INGREDIENTS])
    if len(ingredients) > MAX_SUMMARY_INGREDIENTS:
        summary += "..."
    body = f"{recipe_titles}\n\nUsing: {summary}"
    return _push_payload(RECIPE_TITLE, body, RECIPE_TAG, "recipe_suggestion")


def build_fallback_push_payload(items: list[ExpiringItem]) -> dict:
    """Generic push payload used when recipe generation failed."""
    names = ", ".join(item.name for item in items[:MAX_FALLBACK_ITEMS])
    remaining = len(items) - MAX_FALLBACK_ITEMS
    suffix = f" and {remaining} more" if remaining > 0 else ""
    body = f"{names}{suffix} are expiring soon. Check the app for ideas!"
    return _push_payload(FALLBACK_TITLE, body, FALLBACK_TAG, "recipe_suggestion_fallback")


def build_recipe_email_html(recipes: list[RecipeSuggestion], ingredients: list[str]) -> str:
    """HTML email embedding each recipe card."""
    cards = "".join(
        '<div style="background: #f0fdf4; border: 1px solid #bbf7d0; border-radius: 8px; '
        'padding: 16px; margin-bottom: 12px;">'
        f'<h3 style="margin: 0 0 8px 0; color: #166534; font-size: 16px;">{escape(r.title)}</h3>'
        '<p style="margin: 0 0 8px 0; color: #374151; font-size: 14px;">'
        f"{escape(r.description)}</p>"
        '<p style="margin: 0; color: #6b7280; font-size: 12px;">'
        f"Uses: {escape(', '.join(r.ingredients_used))}</p>"
        "</div>"
        for r in recipes
    )
    return (
        f"{_EMAIL_WRAPPER}"
        '<div style="text-align: center; margin-bottom: 24px;">'
        '<span style="font-size: 48px;">🍳</span>'
        '<h1 style="margin: 8px 0 4px 0; color: #111827; font-size: 20px;">'
        "Recipe Ideas for You</h1>"
        '<p style="margin: 0; color: #6b7280; font-size: 14px;">'
        f"Your ingredients ({escape(', '.join(ingredients))}) are expiring soon!</p>"
        "</div>"
        f"{cards}{_EMAIL_FOOTER}</div>"
    )


def build_fallback_email_html(items: list[ExpiringItem]) -> str:
    """HTML email listing expiring items with their dates."""
    item_list = "".join(
        '<li style="color: #374151; font-size: 14px; margin-bottom: 4px;">'
        f"{escape(item.name)} - expires {_format_date(item.expiry_date)}</li>"
        for item in items
    )
    return (
        f"{_EMAIL_WRAPPER}"
        '<div style="text-align: center; margin-bottom: 24px;">'
        '<span style="font-size: 48px;">🍎</span>'
        '<h1 style="margin: 8px 0 4px 0; color: #111827; font-size: 20px;">Food Expiring Soon!</h1>'
        '<p style="margin: 0; color: #6b7280; font-size: 14px;">'
        "Some of your food is expiring - time to use it up!</p>"
        "</div>"
        f'<ul style="padding-left: 20px;">{item_list}</ul>'
        f"{_EMAIL_FOOTER}</div>"
    )


def build_expiry_reminder_payload(items: list[ExpiringItem], today: date) -> dict:
    """Plain expiry reminder split into urgent (<= 2 days) and soon (3-5 days)."""
    urgent = [item for item in items if (item.expiry_date - today).days <= 2]
    soon = [item for item in items if 2 < (item.expiry_date - today).days <= 5]

    title = "🍎 Food Expiry Alert"
    body = ""
    if urgent:
        title = f"⚠️ {_count(len(urgent))} expiring soon!"
        body = "\n".join(f"• {item.name} ({_format_date(item.expiry_date)})" for item in urgent)
        if soon:
            body += f"\n\n{len(soon)} more {_plural_item(len(soon))} expiring this week"
    elif soon:
        title = f"📅 {_count(len(soon))} expiring this week"
        body = "\n".join(
            f"• {item.name} ({_format_date(item.expiry_date)})" for item in soon[:3]
        )
        if len(soon) > 3:
            body += f"\n...and {len(soon) - 3} more"

    return {
        "title": title,
        "body": body,
        "icon": ICON,
        "badge": BADGE,
        "data": {"url": "/", "itemCount": len(items)},
    }


def _format_date(value: date) -> str:
    return value.isoformat()


def _plural_item(count: int) -> str:
    return "item" if count == 1 else "items"


def _count(count: int) -> str:
    return f"{count} {_plural_item(count)}"

"""
Transforms module for the Crypto Info Bot.

Contains the pure text and math helpers used by the bot:
- Renderer: full and compact currency messages, listings, timestamps
- Pagination: window bounds, navigation buttons, clamped page turns
"""

from transforms.pagination import (
    Button,
    PageWindow,
    compute_buttons,
    compute_window,
    last_page,
    turn_page,
)
from transforms.render import (
    format_percent,
    render_compact,
    render_date,
    render_full,
    render_index,
    render_listing,
    with_updated_at,
)

__all__ = [
    # Renderer
    "format_percent",
    "render_compact",
    "render_date",
    "render_full",
    "render_index",
    "render_listing",
    "with_updated_at",
    # Pagination
    "Button",
    "PageWindow",
    "compute_buttons",
    "compute_window",
    "last_page",
    "turn_page",
]

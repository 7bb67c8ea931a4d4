"""
Pagination math for the currency listing.

Pure helpers: slice bounds, the three-cell navigation row, and clamped
page transitions. Rendering the row as Telegram markup is left to the bot.
"""

from dataclasses import dataclass

PLACEHOLDER_TEXT = "----------"
NOOP_CALLBACK = "/noop"


@dataclass(frozen=True)
class PageWindow:
    """Slice bounds of one page; ``end`` may exceed the item count."""

    start: int
    end: int


@dataclass(frozen=True)
class Button:
    """One inline keyboard cell."""

    text: str
    callback_data: str

    @property
    def is_placeholder(self) -> bool:
        return self.callback_data == NOOP_CALLBACK


def compute_window(page: int, page_size: int, total: int) -> PageWindow:
    """
    Slice bounds of a page.

    ``total`` is accepted for symmetry with the other helpers; the end
    bound is not clamped to it, callers clamp when slicing.

    Example:
        >>> compute_window(3, 30, 95)
        PageWindow(start=90, end=120)
    """
    start = page * page_size
    return PageWindow(start=start, end=start + page_size)


def last_page(total: int, page_size: int) -> int:
    """Highest page index reachable with the next button."""
    return max(total // page_size - 1, 0)


def compute_buttons(namespace: str, page: int, total: int, page_size: int) -> list[Button]:
    """
    Build the navigation row for a listing page.

    Args:
        namespace: Listing key used in callback data (e.g., "rates")
        page: Current page index
        total: Total number of items in the listing
        page_size: Items per page

    Returns:
        [previous, window label, next]; previous and next are placeholders
        on the first and last page respectively
    """
    window = compute_window(page, page_size, total)
    placeholder = Button(PLACEHOLDER_TEXT, NOOP_CALLBACK)

    prev_button = (
        Button(f"< Prev {page_size}", f"/{namespace}/prev") if page > 0 else placeholder
    )
    label = Button(f"{window.start} - {window.end} ({total})", NOOP_CALLBACK)
    next_button = (
        Button(f"Next {page_size} >", f"/{namespace}/next")
        if page < last_page(total, page_size)
        else placeholder
    )
    return [prev_button, label, next_button]


def turn_page(page: int, action: str, total: int, page_size: int) -> int:
    """Apply a ``prev``/``next`` action, clamped to the reachable pages."""
    if action == "prev":
        page -= 1
    elif action == "next":
        page += 1
    return min(max(page, 0), last_page(total, page_size))

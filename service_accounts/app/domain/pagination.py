"""
GOV.UK pagination view model.

Turns the pagination facts of a listing into the structure consumed by the
GOV.UK Frontend pagination component: a summary line, previous/next links and
a list of page links where long runs of pages collapse into ellipsis markers.

For a 100 page listing the visible items are::

    page 1    ->  1 2 ... 100
    page 5    ->  1 ... 4 5 6 ... 100
    page 98   ->  1 ... 97 98 99 100
    page 100  ->  1 ... 99 100

Pure functions only; callers clamp ``current_page`` into range.
"""

from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import quote

MAX_VISIBLE = 5
START_THRESHOLD = 4
END_OFFSET = 3

ELLIPSIS: Dict[str, bool] = {"ellipsis": True}

# Characters encodeURIComponent leaves alone, so links match the browser's own
URI_COMPONENT_SAFE = "!~*'()"


def _format_param(value: Any) -> str:
    # Booleans render the way browsers serialize them
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def build_pagination_url(base_url: str, params: Mapping[str, Any]) -> str:
    """Append ``params`` to ``base_url``, skipping empty values."""
    query_parts = [
        f"{key}={quote(_format_param(value), safe=URI_COMPONENT_SAFE)}"
        for key, value in params.items()
        if value is not None and value != ""
    ]
    return f"{base_url}?{'&'.join(query_parts)}" if query_parts else base_url


def calc_summary(current_page: int, page_size: int, total_items: int) -> Dict[str, int]:
    return {
        "startItem": (current_page - 1) * page_size + 1,
        "endItem": min(current_page * page_size, total_items),
        "totalItems": total_items,
    }


def visible_pages(current_page: int, total_pages: int) -> List[Optional[int]]:
    """Page numbers to render, with ``None`` standing for an ellipsis."""
    if total_pages <= MAX_VISIBLE:
        return list(range(1, total_pages + 1))

    if current_page <= START_THRESHOLD:
        pages = list(range(1, current_page + 2)) + [total_pages]
    elif current_page >= total_pages - END_OFFSET:
        pages = [1] + list(range(current_page - 1, total_pages + 1))
    else:
        pages = [1, current_page - 1, current_page, current_page + 1, total_pages]

    # An ellipsis only goes where at least one page is hidden
    collapsed: List[Optional[int]] = []
    for number in pages:
        if collapsed and number - collapsed[-1] > 1:
            collapsed.append(None)
        collapsed.append(number)
    return collapsed


def compute(
    current_page: int,
    total_pages: int,
    total_items: int,
    page_size: int,
    base_url: str,
    filters: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    """Build the pagination view model for one listing page."""
    filters = {key: value for key, value in (filters or {}).items() if key != "page"}

    def href(page: int) -> str:
        return build_pagination_url(base_url, {"page": page, **filters})

    if total_pages <= 1:
        return {"summary": calc_summary(1, page_size, total_items) if total_items > 0 else None}

    items: List[Dict[str, Any]] = []
    for number in visible_pages(current_page, total_pages):
        if number is None:
            items.append(dict(ELLIPSIS))
        else:
            items.append({
                "number": str(number),
                "href": href(number),
                "current": number == current_page,
            })

    view_model: Dict[str, Any] = {
        "summary": calc_summary(current_page, page_size, total_items),
        "items": items,
    }
    if current_page > 1:
        view_model["previous"] = {"href": href(current_page - 1)}
    if current_page < total_pages:
        view_model["next"] = {"href": href(current_page + 1)}
    return view_model

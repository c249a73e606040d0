"""
View models for the pending and active users listings.
"""

from typing import Any, Dict, List, Mapping, Optional

from .models import DEFAULT_PAGE
from .pagination import compute

PAGE_TITLE = "Manage users"
FETCH_FAILED_MESSAGE = "There was a problem loading users. Try again later."

TAB_URLS = {
    "pending": "/admin/users/pending",
    "active": "/admin/users/active",
}


def get_primary_area_name(areas: Optional[List[Dict[str, Any]]]) -> Optional[str]:
    """Name of the primary area, else the first area, else None."""
    if not areas:
        return None

    primary = next((area for area in areas if area.get("primary")), None)
    return (primary or areas[0]).get("name")


def format_user_for_display(user: Mapping[str, Any]) -> Dict[str, Any]:
    is_admin = bool(user.get("admin"))
    return {
        "id": user.get("id"),
        "firstName": user.get("firstName"),
        "lastName": user.get("lastName"),
        "email": user.get("email"),
        "isAdmin": is_admin,
        "primaryArea": "-" if is_admin else get_primary_area_name(user.get("areas")),
        "createdAt": user.get("createdAt"),
        "lastSignIn": user.get("lastSignIn") or None,
        "status": user.get("status"),
        "invitationSentAt": user.get("invitationSentAt"),
        "invitationAcceptedAt": user.get("invitationAcceptedAt"),
    }


def format_users_for_display(users: List[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    return [format_user_for_display(user) for user in users]


def build_users_view_model(
    *,
    users: List[Mapping[str, Any]],
    pagination: Mapping[str, Any],
    pending_count: int,
    active_count: int,
    filters: Mapping[str, Any],
    current_tab: str,
    base_url: str,
    default_page_size: int,
    error: Optional[str] = None,
) -> Dict[str, Any]:
    """Everything the users listing template renders."""
    total_pages = int(pagination.get("totalPages") or 0)
    total_items = int(pagination.get("total") or 0)
    page_size = int(pagination.get("pageSize") or default_page_size)
    current_page = int(pagination.get("page") or pagination.get("currentPage") or DEFAULT_PAGE)
    # compute() does no bounds checking
    current_page = max(DEFAULT_PAGE, min(current_page, max(total_pages, DEFAULT_PAGE)))

    view_model = {
        "pageTitle": PAGE_TITLE,
        "users": format_users_for_display(users),
        "pagination": compute(current_page, total_pages, total_items, page_size, base_url, filters),
        "pendingCount": pending_count,
        "activeCount": active_count,
        "filters": dict(filters),
        "currentTab": current_tab,
        "baseUrl": base_url,
        "tabUrls": dict(TAB_URLS),
    }
    if error:
        view_model["error"] = error
    return view_model


def get_empty_users_view_model(
    *,
    filters: Mapping[str, Any],
    current_tab: str,
    base_url: str,
    default_page_size: int,
    error: str = FETCH_FAILED_MESSAGE,
) -> Dict[str, Any]:
    return build_users_view_model(
        users=[],
        pagination={"page": DEFAULT_PAGE, "totalPages": 0, "total": 0, "pageSize": default_page_size},
        pending_count=0,
        active_count=0,
        filters=filters,
        current_tab=current_tab,
        base_url=base_url,
        default_page_size=default_page_size,
        error=error,
    )

"""
Data models for account listings.
"""

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from ..caching.keys import list_key

AccountId = Union[int, str]

DEFAULT_PAGE = 1


class AccountStatus:
    """Account status values understood by the backend."""
    PENDING = "pending"
    APPROVED = "approved"
    ACTIVE = "active"


class ListQuery(BaseModel):
    """A normalized account listing query.

    Build instances with :meth:`normalize`; two raw queries that normalize to
    equal ``ListQuery`` values share one cache entry.
    """

    model_config = ConfigDict(frozen=True)

    status: str
    search: str = ""
    area_id: str = ""
    page: int = DEFAULT_PAGE
    page_size: int

    @classmethod
    def normalize(
        cls,
        status: str,
        search: Optional[str] = None,
        area_id: Optional[AccountId] = None,
        page: Optional[int] = None,
        page_size: Optional[int] = None,
        *,
        default_page_size: int,
    ) -> "ListQuery":
        return cls(
            status=status,
            search=(search or "").strip(),
            area_id=str(area_id).strip() if area_id not in (None, "") else "",
            page=page if page and page > 0 else DEFAULT_PAGE,
            page_size=page_size if page_size and page_size > 0 else default_page_size,
        )

    def cache_key(self) -> str:
        return list_key(self.status, self.search, self.area_id, self.page, self.page_size)

    def to_request_params(self) -> Dict[str, Any]:
        """Query parameters for the backend list endpoint."""
        params: Dict[str, Any] = {
            "status": self.status,
            "page": self.page,
            "pageSize": self.page_size,
        }
        if self.search:
            params["search"] = self.search
        if self.area_id:
            params["areaId"] = self.area_id
        return params


class ListMetadata(BaseModel):
    """Which accounts answer a ListQuery, plus the pagination facts.

    Records themselves are cached separately by ID.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    account_ids: List[AccountId] = Field(alias="accountIds")
    pagination: Dict[str, Any]

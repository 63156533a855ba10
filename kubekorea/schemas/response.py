from typing import Any, Generic, List, Optional, TypeVar

from pydantic import BaseModel

from kubekorea.schemas.base import CamelModel
from kubekorea.schemas.user import User

T = TypeVar("T")


class PageInfo(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool


class PaginatedResponse(CamelModel, Generic[T]):
    data: List[T]
    pagination: PageInfo


class ApiResponse(BaseModel):
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    message: Optional[str] = None


class AuthSession(CamelModel):
    token: str
    expires_in: int
    user: User

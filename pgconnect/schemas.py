from typing import Generic, List, Sequence, TypeVar

from pydantic import BaseModel, ConfigDict

T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    """One page of results plus the total number of matching rows."""

    model_config = ConfigDict(from_attributes=True)

    data: List[T]
    total: int
    page: int
    page_size: int

    @classmethod
    def build(cls, items: Sequence[T], total: int, page: int, page_size: int) -> "Page[T]":
        return cls(data=list(items), total=total, page=page, page_size=page_size)

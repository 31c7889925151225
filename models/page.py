from typing import Any, Callable, Generic, List, TypeVar

from pydantic import BaseModel, Field, computed_field

T = TypeVar("T")


class PageRequest(BaseModel):
    page: int = Field(0, ge=0, description="Zero-based page index")
    size: int = Field(15, ge=1, description="Page size")

    @property
    def offset(self) -> int:
        return self.page * self.size


class Page(BaseModel, Generic[T]):
    content: List[T]
    total_elements: int
    page_number: int
    page_size: int

    @computed_field
    @property
    def total_pages(self) -> int:
        if self.total_elements == 0:
            return 0
        return (self.total_elements + self.page_size - 1) // self.page_size

    def map(self, fn: Callable[[T], Any]) -> "Page[Any]":
        return Page[Any](
            content=[fn(item) for item in self.content],
            total_elements=self.total_elements,
            page_number=self.page_number,
            page_size=self.page_size,
        )

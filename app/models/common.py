# app/models/common.py
import math
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Accepts snake_case or camelCase input and dumps camelCase by alias"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_response(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class Pagination(CamelModel):
    current_page: int
    total_pages: int
    total_count: int
    page_size: int

    @classmethod
    def build(cls, page: int, page_size: int, total_count: int) -> "Pagination":
        return cls(
            current_page=page,
            total_pages=math.ceil(total_count / page_size) if total_count else 0,
            total_count=total_count,
            page_size=page_size
        )

    @property
    def offset(self) -> int:
        return (self.current_page - 1) * self.page_size

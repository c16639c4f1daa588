from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class ApiModel(BaseModel):
    # JSON 用 camelCase，Python 端用 snake_case，兩種 key 都收
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class Envelope(BaseModel, Generic[T]):
    success: bool
    data: Optional[T] = None
    error: Optional[str] = None


def ok(data=None) -> Envelope:
    return Envelope(success=True, data=data)


def fail(code: str) -> dict:
    return Envelope(success=False, error=code).model_dump()

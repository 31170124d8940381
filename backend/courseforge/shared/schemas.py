"""Base schema shared by every procedure payload and response.

Python code uses snake_case; the wire format is camelCase (``courseId``,
``imageUrl``). Both spellings are accepted on input.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Pydantic model serialised with camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


SUCCESS_CODE = 200

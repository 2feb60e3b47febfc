"""
Shared schema base classes.

The public API speaks camelCase (accountId, accountNumber, relatedAccount)
while the Python side stays snake_case. ApiModel bridges the two with an
alias generator; populate_by_name lets callers send either spelling.

Every response is wrapped in the same envelope:
    {"success": true, "message": "...", ...payload}
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        str_strip_whitespace=True,
    )


class Envelope(ApiModel):
    """Base for every success response body."""
    success: bool = True
    message: str | None = None

"""Shared schema plumbing.

Learn: Tenant applications speak camelCase JSON (appId, externalOrgId),
Python speaks snake_case. CamelModel generates the aliases; FastAPI
serializes responses by alias and populate_by_name lets services and
tests build models with the Python names.

Email and ImageUrl validate like EmailStr and HttpUrl but hand back the
caller's string untouched, so what is stored and filtered on is exactly
what was sent.
"""

from typing import Annotated

from email_validator import EmailNotValidError, validate_email
from pydantic import AfterValidator, BaseModel, ConfigDict, HttpUrl, TypeAdapter
from pydantic.alias_generators import to_camel

_http_url = TypeAdapter(HttpUrl)


def _check_email(value: str) -> str:
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError as e:
        raise ValueError(f"value is not a valid email address: {e}") from e
    return value


def _check_url(value: str) -> str:
    _http_url.validate_python(value)
    return value


Email = Annotated[str, AfterValidator(_check_email)]
ImageUrl = Annotated[str, AfterValidator(_check_url)]


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ErrorResponse(BaseModel):
    error: str
    details: dict | list | None = None


class PageMeta(CamelModel):
    total: int
    limit: int
    offset: int

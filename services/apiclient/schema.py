"""
Response Schema - Pagination Field Mapping

Maps the client's four logical pagination fields onto the field names a
specific API actually uses, and extracts a PageResult from a decoded page.

Usage:
    from services.apiclient.schema import ResponseSchema

    schema = ResponseSchema(records="content", total_records="totalElements")
    page = schema.extract(payload)
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from services.apiclient.errors import DecodeError, SchemaMismatchError


class ResponseSchema(BaseModel):
    """Logical pagination field -> API field name."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    page_number: str = Field(default="page", min_length=1)
    page_limit: str = Field(default="limit", min_length=1)
    total_records: str = Field(default="total", min_length=1)
    records: str = Field(default="records", min_length=1)

    def extract(self, payload: dict[str, Any], *, strict: bool = False) -> "PageResult":
        """Extract a PageResult from a decoded response.

        Args:
            payload: Decoded JSON object of one page
            strict: Raise SchemaMismatchError when pagination fields are missing

        Returns:
            PageResult with records, page number and total (when reported)

        Raises:
            DecodeError: If the records field holds something other than a list
            SchemaMismatchError: If strict and page/total fields are missing
        """
        raw_records = payload.get(self.records)
        if not raw_records:
            records: list[Any] = []
        elif isinstance(raw_records, list):
            records = raw_records
        else:
            raise DecodeError(
                f"Field '{self.records}' is not a list (got {type(raw_records).__name__})"
            )

        if strict:
            missing = [
                name for name in (self.page_number, self.total_records) if name not in payload
            ]
            if missing:
                raise SchemaMismatchError(
                    f"Response lacks pagination fields: {', '.join(missing)}",
                    missing=missing,
                )

        return PageResult(
            records=records,
            page_number=coerce_int(payload.get(self.page_number)),
            total_records=coerce_int(payload.get(self.total_records)),
        )


class PageResult(BaseModel):
    """One page as seen through a ResponseSchema."""

    records: list[Any] = Field(default_factory=list)
    page_number: Optional[int] = None
    total_records: Optional[int] = None


def compute_total_pages(total_records: Optional[int], page_limit: Optional[int]) -> Optional[int]:
    """Return ``1 + floor(total_records / page_limit)`` or None when unknown.

    Both values must be present and non-zero.
    """
    if not total_records or not page_limit:
        return None
    return 1 + total_records // page_limit


def coerce_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None

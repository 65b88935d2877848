# FILE: opd_pharmacy/schemas/common.py
from __future__ import annotations

import math

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """
    Python side stays snake_case; JSON in and out is camelCase
    (medicineName, deductedItems ...). Snake keys are still accepted on input.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PaginationOut(ApiModel):
    total: int
    page: int
    limit: int
    total_pages: int

    @classmethod
    def build(cls, total: int, page: int, limit: int) -> "PaginationOut":
        return cls(
            total=total,
            page=page,
            limit=limit,
            total_pages=math.ceil(total / limit) if limit else 0,
        )

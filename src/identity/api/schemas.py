"""Pydantic response schemas for the Identity API."""

from typing import Any

from pydantic import BaseModel


class PaginationSchema(BaseModel):
    page: int
    per_page: int
    total: int
    total_pages: int


class OrderListData(BaseModel):
    orders: list[dict[str, Any]]
    pagination: PaginationSchema


class OrderListResponse(BaseModel):
    success: bool = True
    message: str = "Orders retrieved"
    data: OrderListData


class OrderResponse(BaseModel):
    success: bool = True
    message: str = "Order retrieved"
    data: dict[str, Any]

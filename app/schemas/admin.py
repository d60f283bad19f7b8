from typing import List

from pydantic import BaseModel

from app.schemas.catalog import ContentResponse, ProjectResponse
from app.schemas.order import OrderResponse
from app.schemas.user import UserResponse


class MonthlyRevenue(BaseModel):
    month: str  # YYYY-MM
    amount: int


class StatsResponse(BaseModel):
    total_users: int
    total_content: int
    total_orders: int
    total_revenue: int
    recent_orders: List[OrderResponse]
    monthly_revenue: List[MonthlyRevenue]


class UserStatistics(BaseModel):
    total_spent: int
    total_purchases: int
    content_purchased: int
    projects_purchased: int


class UserProfileResponse(BaseModel):
    user: UserResponse
    purchased_content: List[ContentResponse]
    purchased_projects: List[ProjectResponse]
    orders: List[OrderResponse]
    statistics: UserStatistics


class ReconcileResponse(BaseModel):
    files_removed: int
    files_pending: int
    entitlements_removed: int

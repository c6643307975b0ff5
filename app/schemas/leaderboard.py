from pydantic import BaseModel
from decimal import Decimal
from typing import List


class LeaderboardEntry(BaseModel):
    rank: int
    user_id: int
    courses_count: int
    students_count: int
    total_earnings: Decimal
    points: int


class LeaderboardResponse(BaseModel):
    entries: List[LeaderboardEntry]
    total: int
    limit: int
    offset: int


class RefreshResponse(BaseModel):
    refreshed_count: int

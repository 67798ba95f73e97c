from pydantic import BaseModel


class DashboardStats(BaseModel):
    """Row counts shown on the dashboard."""
    user_count: int
    role_count: int
    permission_count: int
    online_count: int

from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    database_url: str = "sqlite:///./order_approval.db"

    # Default holder of each role; used when the route hands off to a role
    # rather than to a named person picked by the user.
    technologist_name: str = "technologist"
    head_order_department_name: str = "head.orders"
    order_manager_name: str = "order.manager"

    # Business days allowed for the step created by each role's approval
    technologist_deadline_days: int = 5
    head_order_department_deadline_days: int = 3
    order_manager_deadline_days: int = 3

    initial_deadline_days: int = 1

    # Used when a resolved business-day count is not positive
    fallback_deadline_days: int = 1

    log_level: str = "INFO"

    class Config:
        env_prefix = "ORDER_APPROVAL_"
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> Settings:
    return Settings()

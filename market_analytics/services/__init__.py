"""
Market Analytics Services

Service layer containing all analytics logic.
Each service has a defined contract and implementation.
"""

from market_analytics.services.base import BaseService, ServiceError
from market_analytics.services.analytics import AnalyticsService, create_analytics_service

__all__ = [
    "BaseService",
    "ServiceError",
    "AnalyticsService",
    "create_analytics_service",
]

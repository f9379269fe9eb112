"""
Rate limiting shared by the application and its routers.
"""
from slowapi import Limiter
from slowapi.util import get_remote_address

from richness_report.config import settings

limiter = Limiter(key_func=get_remote_address)

# Report rendering is the expensive endpoint
REPORT_RATE_LIMIT = f"{settings.rate_limit_requests}/minute"

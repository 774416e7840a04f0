# Admission control: origin allow-list and request rate limiting.

from devflow.security.origins import OriginPolicy
from devflow.security.rate_limiter import RateLimiter, RateLimitInfo

__all__ = ["OriginPolicy", "RateLimiter", "RateLimitInfo"]

# Import all models so Base.metadata knows every table
from app.models.database import Base  # noqa: F401
from app.models.yield_cache import YieldCacheEntry  # noqa: F401

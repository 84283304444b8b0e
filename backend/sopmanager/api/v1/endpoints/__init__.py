# API endpoints
from . import auth, restaurants, training, i18n, analytics, health

__all__ = ["auth", "restaurants", "training", "i18n", "analytics", "health"]

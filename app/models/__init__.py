from app.models.history import DetectionHistory
from app.models.pill import Pill
from app.models.user import User

__all__ = ["DetectionHistory", "Pill", "User"]

from .models import DriverProfile
from .subject_db import SubjectDB

__all__ = [
    "DriverProfile",
    "SubjectDB",
]

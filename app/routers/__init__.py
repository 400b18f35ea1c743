"""API routers package"""

from . import auth
from . import interview
from . import candidates
from . import questions
from . import domains

__all__ = [
    "auth", "interview", "candidates",
    "questions", "domains"
]

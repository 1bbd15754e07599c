from .user import User
from .admin import Admin, AdminRole
from .contest_week import ContestWeek, WeekStatus
from .contest_winner import ContestWinner
from .app import App
from .vote import Vote

# created at startup
CORE_TABLES = (User.__table__, Admin.__table__, App.__table__, Vote.__table__)
# created only by the admin-invoked schema repair
CONTEST_TABLES = (ContestWeek.__table__, ContestWinner.__table__)

__all__ = [
    "User",
    "Admin",
    "AdminRole",
    "ContestWeek",
    "WeekStatus",
    "ContestWinner",
    "App",
    "Vote",
    "CORE_TABLES",
    "CONTEST_TABLES",
]

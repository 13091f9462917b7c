from src.models.user import User
from src.models.profile import Profile, UserSettings
from src.models.submission import TaskSubmission, SheetSubmission
from src.models.user_statistic import UserStatistic
from src.models.user_progress import UserProgress

"""Domain errors raised by the rewards engine and translated to HTTP responses in main.py."""


class StudyQuestError(Exception):
    """Base class for errors the API knows how to report."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ProgressValidationError(StudyQuestError):
    """Malformed or inconsistent completion event. Raised before any mutation."""

    status_code = 400

    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field


class UserNotFoundError(StudyQuestError):
    status_code = 404

    def __init__(self, user_id):
        super().__init__(f"User with ID {user_id} not found.")
        self.user_id = user_id


class RankSnapshotError(StudyQuestError):
    """The daily snapshot run failed; nothing was committed and it can be re-triggered."""

    status_code = 500


class LeaderboardUnavailableError(StudyQuestError):
    """The leaderboard could not be loaded; callers should retry."""

    status_code = 503

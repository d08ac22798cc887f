"""Static metadata describing quiz_hub."""

APP_NAME = "quiz_hub"
APP_VERSION = "0.1.0"
APP_ABOUT_TEXT = (
    "quiz_hub hosts short-lived multiplayer quizzes. Owners generate a quiz from a topic, "
    "participants join with the quiz code and submit their answers, and closing the quiz "
    "produces a ranked leaderboard."
)

import os

base_dir = os.path.abspath(os.path.dirname(__file__))


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY") or "change-me"
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL") or "sqlite:///" + os.path.join(base_dir, "darts.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    # How revert recomputes progress: 'replay' folds the kept turns, 'snapshot'
    # reads the state stored on the target turn.
    REVERT_STRATEGY = os.environ.get("REVERT_STRATEGY", "replay")

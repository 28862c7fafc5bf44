import os
from pathlib import Path
from dotenv import load_dotenv
load_dotenv()

BASE_DIR = Path(__file__).resolve().parent.parent  # <project>
INSTANCE_DIR = BASE_DIR / "instance"
INSTANCE_DIR.mkdir(parents=True, exist_ok=True)

def _default_sqlite_uri():
    return f"sqlite:///{(INSTANCE_DIR / 'fieldops.db').as_posix()}"

class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret")
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL") or _default_sqlite_uri()
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # payout engine tunables (company conventions, not fixed laws)
    PAYOUT_EQ_DIVISOR = os.getenv("PAYOUT_EQ_DIVISOR", "25")
    PAYOUT_MACHINE_RENTAL_FEE = os.getenv("PAYOUT_MACHINE_RENTAL_FEE", "10")
    PAYOUT_SPLIT_TOLERANCE = os.getenv("PAYOUT_SPLIT_TOLERANCE", "0.1")
    PAYOUT_SILVER_FULL_BONUS = os.getenv("PAYOUT_SILVER_FULL_BONUS", "1.00")

class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    LOG_LEVEL = "DEBUG"

def ensure_instance(app):
    # Flask instance path
    os.makedirs(app.instance_path, exist_ok=True)

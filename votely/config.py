# votely/config.py
# Central place for settings and constants
import os

from dotenv import load_dotenv

load_dotenv()

# --- Database ---
MONGO_URI = os.getenv("MONGO_URI", "mongodb://localhost:27017")
MONGO_DB = os.getenv("MONGO_DB", "votely")

# --- Security & JWT ---
# In production, always set SECRET_KEY through the environment
SECRET_KEY = os.getenv("SECRET_KEY", "a_very_secret_key_for_dev_only")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))

# --- HTTP ---
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173").split(",")
    if origin.strip()
]
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "5001"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# --- Domain constants ---
ROLE_ADMIN = "Admin"
ROLE_VOTER = "Voter"
STATUS_ACTIVE = "Active"
STATUS_INACTIVE = "Inactive"

ADMIN_ROOM = "admin-room"
# Seconds a realtime send may take before the observer is dropped
SEND_TIMEOUT = float(os.getenv("SEND_TIMEOUT", "2"))

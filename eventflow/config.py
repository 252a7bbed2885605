import os

from dotenv import load_dotenv

# Load environment variables for AWS credentials, tokens and third-party keys
load_dotenv()

# AWS
AWS_ACCESS_KEY = os.getenv("AWS_ACCESS_KEY")
AWS_SECRET_KEY = os.getenv("AWS_SECRET_KEY")
AWS_REGION = os.getenv("AWS_REGION", "us-east-1")

USERS_TABLE = os.getenv("USERS_TABLE", "Users")
EVENTS_TABLE = os.getenv("EVENTS_TABLE", "Events")
GUESTS_TABLE = os.getenv("GUESTS_TABLE", "Guests")

SES_SENDER_EMAIL = os.getenv("SES_SENDER_EMAIL", "no-reply@eventflow.app")

# Auth
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "dev-secret-key-change-in-production")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))
RESET_TOKEN_EXPIRE_MINUTES = int(os.getenv("RESET_TOKEN_EXPIRE_MINUTES", "30"))

GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID")
GOOGLE_TOKEN_INFO_URL = "https://oauth2.googleapis.com/tokeninfo?id_token="

# Link sent in the recovery email, the reset token is appended as a query param
FRONTEND_RESET_URL = os.getenv("FRONTEND_RESET_URL", "eventflow://reset-password")

# Comma separated list of allowed origins
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:8081").split(",")
    if origin.strip()
]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

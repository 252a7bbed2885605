from enum import Enum

class AuthProvider(str, Enum):
    PASSWORD = "password"
    GOOGLE = "google"

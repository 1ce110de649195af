from os import getenv

class Settings:
    DATABASE_URL = getenv("DATABASE_URL", "sqlite:///./cms.db")

    JWT_SECRET = getenv("JWT_SECRET", "dev-secret-change-in-prod")
    JWT_EXPIRE_MIN = int(getenv("JWT_EXPIRE_MIN", "15"))  #expire au bout de 15 minutes
    JWT_REFRESH_EXPIRE_MIN = int(getenv("JWT_REFRESH_EXPIRE_MIN", "43200"))  #expire au bout d'1 mois

    LOG_LEVEL = getenv("LOG_LEVEL", "INFO")

    # part de la largeur de l'élément glissé en dessous de laquelle on insère en frère
    DROP_CHILD_THRESHOLD = float(getenv("DROP_CHILD_THRESHOLD", "0.33"))

    # client HTTP de l'éditeur d'arborescence
    API_BASE_URL = getenv("API_BASE_URL", "http://localhost:8000")
    API_TIMEOUT = float(getenv("API_TIMEOUT", "10"))

settings = Settings()

import os

# Storage backend: "chroma" (persistent) or "memory"
STORE_BACKEND = os.getenv("PROVIDER_STORE_BACKEND", "chroma")
CHROMA_PERSIST_DIRECTORY = os.getenv("CHROMA_PERSIST_DIRECTORY", "./data/chroma_db")

# Seed file loaded by main.py when the store is empty
SEED_DATA_FILE = os.getenv("SEED_DATA_FILE", "data/providers.json")

# Query Gateway
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8000"))
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv(
        "CORS_ORIGINS", "http://localhost:5173,http://localhost:8080"
    ).split(",")
    if origin.strip()
]

# Searches still running after this many seconds are cancelled (HTTP 504)
SEARCH_TIMEOUT_SECONDS = float(os.getenv("SEARCH_TIMEOUT_SECONDS", "5"))

# tests/conftest.py

import os

# api.py builds its store at import time; keep tests off the on-disk backend
os.environ.setdefault("PROVIDER_STORE_BACKEND", "memory")

# src/infrastructure/store_factory.py

from src import config
from src.domain.interfaces import ProviderStorePort
from src.infrastructure.chroma_store import ChromaProviderStore
from src.infrastructure.memory_store import InMemoryProviderStore


def build_provider_store(
    backend: str = config.STORE_BACKEND,
    persist_directory: str = config.CHROMA_PERSIST_DIRECTORY,
) -> ProviderStorePort:
    """Pick the store adapter named by PROVIDER_STORE_BACKEND."""
    backend = backend.strip().lower()
    if backend == "memory":
        print("[StoreFactory] Using in-memory provider store.")
        return InMemoryProviderStore()
    if backend == "chroma":
        return ChromaProviderStore(persist_directory=persist_directory)
    raise ValueError(
        f"Unknown provider store backend '{backend}'. Expected 'chroma' or 'memory'."
    )

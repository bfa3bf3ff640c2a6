from .base import Repositories
from .memory import MemoryRepositories, MemoryStore

__all__ = ['Repositories', 'MemoryRepositories', 'MemoryStore']

"""
Storage implementations.

Provides implementations of the LadderStore interface.

Available implementations:
- MemoryLadderStore: dict-backed, volatile
- JSONLLadderStore: JSON/JSONL files in a data directory
"""

from .jsonl_storage import JSONLLadderStore
from .memory_storage import MemoryLadderStore

__all__ = ["JSONLLadderStore", "MemoryLadderStore"]

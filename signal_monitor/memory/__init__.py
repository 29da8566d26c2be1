# Persistent memory stores
from .memory_store import MemoryStore
from .company_memory import CompanyMemory
from .signal_history import SignalHistory, hash_body
from .user_preferences import FeedbackStore, UserPreferencesStore

# Memory Module
from .context import ContextState, ContextStore
from .summarizer import HistorySummarizer

__all__ = ["ContextState", "ContextStore", "HistorySummarizer"]

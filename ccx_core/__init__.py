"""
ccx_core package: inline currency conversion engine

Usage:
    from ccx_core import AnnotationEngine, MemoryStore, get_rate_cache
    from ccx_core.rates import LocalRateClient, RateService

    store = MemoryStore()
    cache = get_rate_cache(LocalRateClient(RateService(store)))
    engine = AnnotationEngine(document, store, cache)
    await engine.start()
"""

__version__ = "0.1.0"

from .config import Config, config
from .exceptions import CcxError, RateLookupError, RateFetchError, StoreError, SnapshotError
from .document import Document, Element, Text, MutationRecord
from .extractor import DetectedValue, extract_amount, extract_currency, resolve_value
from .formatter import build_conversion, format_currency
from .storage import KeyValueStore, MemoryStore, JSONFileStore
from .options import Options, get_options, set_options
from .site_state import get_site_enabled, set_site_enabled
from .rate_cache import RateCache, get_rate_cache, reset_rate_cache
from .annotations import AnnotationStore, ProcessingStatus
from .scanner import DocumentScanner
from .scheduler import ScanScheduler, LoopIdleScheduler, SchedulerState
from .engine import AnnotationEngine
from .snapshot import build_document, capture_snapshot, render_html, el

__all__ = [
    # Core
    "__version__",
    "Config",
    "config",
    # Errors
    "CcxError",
    "RateLookupError",
    "RateFetchError",
    "StoreError",
    "SnapshotError",
    # Document model
    "Document",
    "Element",
    "Text",
    "MutationRecord",
    "build_document",
    "capture_snapshot",
    "render_html",
    "el",
    # Detection
    "DetectedValue",
    "extract_amount",
    "extract_currency",
    "resolve_value",
    "build_conversion",
    "format_currency",
    # Storage
    "KeyValueStore",
    "MemoryStore",
    "JSONFileStore",
    "Options",
    "get_options",
    "set_options",
    "get_site_enabled",
    "set_site_enabled",
    # Engine
    "RateCache",
    "get_rate_cache",
    "reset_rate_cache",
    "AnnotationStore",
    "ProcessingStatus",
    "DocumentScanner",
    "ScanScheduler",
    "LoopIdleScheduler",
    "SchedulerState",
    "AnnotationEngine",
]

"""
Annotation Engine - Inline currency conversions for a live document

Orchestrates one document:

1. Scanner collects price-like candidate elements
2. Extractor resolves currency + amount (own text, then nearby context)
3. RateCache resolves rates for the detected currency
4. Formatter renders every target and the annotation is inserted right
   after the element

Re-runs are idempotent: an element whose source text is unchanged is left
alone, a changed one is re-annotated, siblings showing the same value under
one parent are annotated once.

Usage:
    engine = AnnotationEngine(document, store, get_rate_cache(client))
    await engine.start()
    ...
    await engine.drain()
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Set

from .annotations import AnnotationStore, ProcessingStatus, text_without_annotations
from .config import config
from .document import Document, Element, MutationRecord
from .extractor import DetectedValue, has_currency_marker, has_number, resolve_value
from .formatter import build_conversion
from .options import DEFAULT_OPTIONS, OPTIONS_KEY, Options, get_options, parse_options
from .rate_cache import RateCache
from .scanner import MAX_TEXT_LENGTH, DocumentScanner
from .scheduler import IdleScheduler, ScanScheduler, SchedulerState
from .site_state import SITE_STATE_KEY, get_site_enabled, is_enabled_in
from .storage import Changes, KeyValueStore

logger = logging.getLogger(__name__)


@dataclass
class _Conversion:
    """One candidate waiting for rates."""
    element: Element
    value: DetectedValue
    targets: List[str]
    group_key: str
    generation: int


class AnnotationEngine:
    """
    Detects prices in a document and annotates them with converted values.

    Args:
        document: Host document
        store: Key-value store holding options and site state
        rate_cache: Shared rate cache
        locale: Babel locale for formatting (default from config)
        idle: Optional IdleScheduler for deferred re-scans
        debounce: Re-scan debounce in seconds (default from config)
        run_logger: Optional RunLogger
    """

    def __init__(
        self,
        document: Document,
        store: KeyValueStore,
        rate_cache: RateCache,
        locale: Optional[str] = None,
        idle: Optional[IdleScheduler] = None,
        debounce: Optional[float] = None,
        run_logger=None,
    ):
        self.document = document
        self.store = store
        self.rate_cache = rate_cache
        self.locale = locale or config.locale
        self.run_logger = run_logger

        self.annotations = AnnotationStore()
        self.scanner = DocumentScanner(self.annotations)
        self.scheduler = ScanScheduler(self._run_scan, self._is_active, debounce=debounce, idle=idle)

        self.options: Options = DEFAULT_OPTIONS
        self.enabled = False

        # Bumped whenever existing conversions are cleared; stale requests must not commit
        self._generation = 0
        self._pending: Set[asyncio.Task] = set()
        self._unobserve = None
        self._unsubscribe = None

    def _log(self, message: str, data: Any = None):
        """Log to run logger if available."""
        if self.run_logger:
            if data:
                self.run_logger.log_text(f"{message}: {json.dumps(data, ensure_ascii=False)}")
            else:
                self.run_logger.log_text(message)

    # Lifecycle

    async def start(self) -> None:
        """Load options and site state, follow store changes, and scan if enabled."""
        self.options = await get_options(self.store)
        enabled = await get_site_enabled(self.store, self.document.hostname)
        if self._unsubscribe is None:
            self._unsubscribe = self.store.subscribe(self._on_store_change)
        logger.info(
            f"Engine started for {self.document.hostname or '<no host>'} "
            f"(enabled={enabled}, targets={','.join(self.options.targets)})"
        )
        self.set_site_enabled(enabled)

    def stop(self) -> None:
        """Stop observing the document and the store. Annotations stay in place."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.stop_observer()

    async def drain(self) -> None:
        """Wait until the running scan and every in-flight conversion settle."""
        while self._pending or self.scheduler.state is SchedulerState.RUNNING:
            await self.scheduler.wait()
            if self._pending:
                await asyncio.gather(*list(self._pending), return_exceptions=True)

    def set_site_enabled(self, enabled: bool) -> None:
        """
        Enable or disable conversions for this document.

        Enabling scans once and starts observing; disabling retracts every
        annotation, clears every processing state and stops observing.
        """
        if enabled == self.enabled:
            return
        self.enabled = enabled
        if enabled:
            self.scan_and_convert()
            self.start_observer()
        else:
            self.stop_observer()
            removed = self.clear_conversions()
            self._log("Conversions disabled", {"removed": removed})

    def apply_options(self, options: Options) -> None:
        """Replace the options wholesale: clear, then rescan when enabled."""
        self.options = options
        self.clear_conversions()
        if self.enabled:
            self.scan_and_convert()

    async def reload_options(self) -> Options:
        options = await get_options(self.store)
        self.apply_options(options)
        return options

    def _on_store_change(self, changes: Changes) -> None:
        if OPTIONS_KEY in changes:
            self.apply_options(parse_options(changes[OPTIONS_KEY]["new_value"]))
        if SITE_STATE_KEY in changes:
            self.set_site_enabled(is_enabled_in(changes[SITE_STATE_KEY]["new_value"], self.document.hostname))

    # Observation

    def start_observer(self) -> None:
        if self._unobserve is None:
            self._unobserve = self.document.observe(self._on_mutation)

    def stop_observer(self) -> None:
        if self._unobserve is not None:
            self._unobserve()
            self._unobserve = None
        self.scheduler.cancel()

    def _on_mutation(self, record: MutationRecord) -> None:
        self.scheduler.notify()

    def _is_active(self) -> bool:
        return self.enabled and self.document.visible

    async def _run_scan(self) -> None:
        tasks = self.scan_and_convert()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    # Scanning

    def clear_conversions(self) -> int:
        """Remove every annotation and forget every processing state."""
        self._generation += 1
        return self.annotations.clear()

    def scan_and_convert(self, root: Optional[Element] = None) -> List[asyncio.Task]:
        """
        Scan ``root`` (default: document body) and start a conversion for
        every candidate that needs one.

        Returns:
            Tasks for the conversions started by this scan
        """
        if not self.enabled:
            return []

        tasks = []
        for element in self.scanner.scan(root or self.document.body):
            try:
                conversion = self._prepare(element)
            except Exception as e:
                logger.warning(f"Skipping candidate {element!r}: {e}")
                continue
            if conversion is None:
                continue
            task = asyncio.ensure_future(self._convert(conversion))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
            tasks.append(task)

        if tasks:
            logger.debug(f"Started {len(tasks)} conversions")
        return tasks

    async def process_element(self, element: Element) -> bool:
        """
        Run the full pipeline for a single element.

        Returns:
            True when an annotation was inserted
        """
        try:
            conversion = self._prepare(element)
        except Exception as e:
            logger.warning(f"Skipping candidate {element!r}: {e}")
            return False
        if conversion is None:
            return False
        return await self._convert(conversion)

    def _prepare(self, element: Element) -> Optional[_Conversion]:
        if not self.scanner.is_eligible(element) or not element.is_connected:
            return None

        own_text = text_without_annotations(element, self.annotations).strip()
        if not own_text or len(own_text) > MAX_TEXT_LENGTH:
            return None
        if not has_currency_marker(own_text) and not has_number(own_text):
            return None

        value, source_text = resolve_value(own_text, self.scanner.context_texts(element))

        state = self.annotations.state(element)
        if state.status is ProcessingStatus.PROCESSING:
            return None
        if state.status is ProcessingStatus.PROCESSED:
            annotation = self.annotations.annotation_for(element)
            intact = annotation is not None and annotation.node.parent is element.parent
            if state.source_text == source_text and intact:
                return None
            self.annotations.retract(element)

        if value is None:
            return None

        targets = [t for t in self.options.targets if t != value.currency_code]
        if not targets:
            return None

        group_key = value.group_key
        if self.annotations.has_group(element.parent, group_key):
            return None

        if not self.annotations.begin_processing(element):
            return None
        return _Conversion(element, value, targets, group_key, self._generation)

    async def _convert(self, conversion: _Conversion) -> bool:
        element = conversion.element
        value = conversion.value
        try:
            # Shielded: the lookup is shared with every other caller of the same key
            rates = await asyncio.shield(self.rate_cache.get_rates(value.currency_code, conversion.targets))

            display_text = build_conversion(value.amount, conversion.targets, rates, self.locale)
            if display_text is None:
                logger.debug(f"No usable rates for {conversion.group_key}")
                return False

            if not self._can_commit(conversion):
                logger.debug(f"Dropping stale conversion for {conversion.group_key}")
                return False

            self.annotations.attach(element, display_text, conversion.group_key)
            self.annotations.mark_processed(element, value.source_text, conversion.group_key)
            self._log("Annotated", {"group": conversion.group_key, "text": display_text})
            return True
        except Exception as e:
            logger.warning(f"Conversion failed for {conversion.group_key}: {e}")
            return False
        finally:
            # After a clear the state belongs to newer work
            if conversion.generation == self._generation:
                self.annotations.end_processing(element)

    def _can_commit(self, conversion: _Conversion) -> bool:
        element = conversion.element
        return (
            conversion.generation == self._generation
            and self.enabled
            and element.is_connected
            and element.parent is not None
            and not self.annotations.has_group(element.parent, conversion.group_key)
        )

    # Reporting

    def summary(self) -> List[Dict[str, str]]:
        """Current annotations in document order."""
        order = {id(e): i for i, e in enumerate(self.document.root.iter_elements(include_self=True))}
        annotations = sorted(self.annotations.annotations(), key=lambda a: order.get(id(a.anchor), len(order)))
        return [
            {
                "group_key": a.group_key,
                "source_text": text_without_annotations(a.anchor, self.annotations).strip(),
                "display_text": a.display_text,
            }
            for a in annotations
        ]

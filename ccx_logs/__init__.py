"""
ccx_logs - Markdown run reports for ccx

Usage:
    from ccx_logs import create_run_logger

    run_logger = create_run_logger("Annotate prices", url="https://shop.example")
    engine = AnnotationEngine(document, store, cache, run_logger=run_logger)
    ...
    run_logger.log_annotations(engine.summary())
    run_logger.finalize(success=True)
"""

from .run_logger import RunLogger, create_run_logger

__all__ = [
    'RunLogger',
    'create_run_logger',
]

__version__ = '0.1.0'

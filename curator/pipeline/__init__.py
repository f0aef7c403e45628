"""Pipeline orchestration."""

from .orchestrator import PipelineOrchestrator, print_run_summary
from .runner import SourceRunner, SourceRunResult

__all__ = ["PipelineOrchestrator", "SourceRunner", "SourceRunResult", "print_run_summary"]

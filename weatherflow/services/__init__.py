from .orchestrator import FetchOrchestrator, classify, retry_delay

__all__ = ["FetchOrchestrator", "classify", "retry_delay"]

"""Business logic services."""

from llmstxt.services.change_detector import ChangeDetector
from llmstxt.services.discovery import DiscoveryService
from llmstxt.services.job_queue import JobQueue, JobQueueClosed
from llmstxt.services.orchestrator import JobOrchestrator, JobTimeoutError
from llmstxt.services.sitemap import SitemapParser

__all__ = [
    "ChangeDetector",
    "DiscoveryService",
    "JobQueue",
    "JobQueueClosed",
    "JobOrchestrator",
    "JobTimeoutError",
    "SitemapParser",
]

"""
Playwright browser workers
"""

from .browser_service import BrowserAutomationService, BrowserConfig, PageWorker

__all__ = ["BrowserAutomationService", "BrowserConfig", "PageWorker"]

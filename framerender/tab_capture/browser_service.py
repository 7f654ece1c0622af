#!/usr/bin/env python3
"""
Browser automation service for frame rendering
Opens Playwright pages that load a composition bundle and render it one frame at a time
"""

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional

from playwright.async_api import Browser, ConsoleMessage, Page, Playwright, async_playwright

from ..config.config import Config, RenderDefaults
from ..core.exceptions import BrowserError
from ..core.interfaces import ErrorListener, IRenderWorker, IWorkerFactory, WorkerSetup

logger = logging.getLogger("framerender.browser")


class BrowserConfig:
    """Configuration for browser automation"""
    def __init__(self):
        self.headless = Config.HEADLESS
        self.executable_path = Config.BROWSER_EXECUTABLE
        self.dump_browser_logs = Config.DUMP_BROWSER_LOGS
        # Deadline for a page to report it is ready after a seek
        self.seek_timeout_ms = Config.SEEK_TIMEOUT_MS
        self.navigation_timeout_ms = Config.NAVIGATION_TIMEOUT_MS
        self.args = [
            "--autoplay-policy=no-user-gesture-required",
            "--disable-background-timer-throttling",
            "--disable-renderer-backgrounding",
            "--force-device-scale-factor=1.0"
        ]

    @classmethod
    def from_defaults(cls, defaults: RenderDefaults) -> "BrowserConfig":
        config = cls()
        config.seek_timeout_ms = defaults.seek_timeout_ms
        config.navigation_timeout_ms = defaults.navigation_timeout_ms
        return config


def build_init_script(setup: WorkerSetup) -> str:
    """Script run before the bundle loads so the composition sees props, env and its first frame"""
    return (
        f"window.remotion_inputProps = {json.dumps(json.dumps(setup.input_props or {}))};\n"
        f"window.remotion_envVariables = {json.dumps(json.dumps(setup.env_variables or {}))};\n"
        f"window.remotion_initialFrame = {int(setup.initial_frame)};\n"
    )


class PageWorker(IRenderWorker):
    """A browser tab with the composition loaded, reused across frames"""

    def __init__(self, page: Page, config: BrowserConfig):
        self.page = page
        self.config = config
        self._listeners: List[ErrorListener] = []
        self.page.on("pageerror", self._dispatch_error)
        self.page.on("crash", self._dispatch_crash)
        if config.dump_browser_logs:
            self.page.on("console", self._log_console)

    def _dispatch_error(self, error: Exception) -> None:
        for listener in list(self._listeners):
            listener(error)

    def _dispatch_crash(self, page: Page) -> None:
        self._dispatch_error(BrowserError("The browser tab crashed", error_code="page_crashed"))

    def _log_console(self, message: ConsoleMessage) -> None:
        logger.debug(f"[browser:{message.type}] {message.text}")

    def add_error_listener(self, listener: ErrorListener) -> None:
        self._listeners.append(listener)

    def remove_error_listener(self, listener: ErrorListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def load(self, setup: WorkerSetup) -> None:
        """Inject props and env, then navigate to the composition"""
        await self.page.add_init_script(script=build_init_script(setup))
        await self.page.goto(setup.composition_url, timeout=self.config.navigation_timeout_ms)

    async def seek_to_frame(self, frame: int) -> None:
        await self.page.evaluate("(frame) => window.remotion_setFrame(frame)", frame)
        await self.page.wait_for_function(
            "window.remotion_renderReady === true",
            timeout=self.config.seek_timeout_ms
        )

    async def screenshot(self, output: str, image_format: str, quality: Optional[int] = None) -> None:
        options: Dict[str, Any] = {"path": output, "type": image_format, "omit_background": image_format == "png"}
        if quality is not None:
            options["quality"] = quality
        await self.page.screenshot(**options)

    async def collect_assets(self) -> List[Dict[str, Any]]:
        return await self.page.evaluate("() => window.remotion_collectAssets()")

    async def close(self) -> None:
        self._listeners.clear()
        if not self.page.is_closed():
            await self.page.close()


class BrowserAutomationService(IWorkerFactory):
    """
    Launches Chromium through Playwright and opens render workers on it.

    A browser passed in by the caller is reused and left open on close.
    """

    def __init__(self, config: BrowserConfig = None, browser: Optional[Browser] = None):
        self.config = config or BrowserConfig()
        self.playwright: Optional[Playwright] = None
        self.browser: Optional[Browser] = browser
        self._owns_browser = browser is None
        self.workers_opened = 0
        self._start_lock = asyncio.Lock()

    async def start(self) -> Browser:
        """Launch the browser unless one is already available"""
        # Workers are opened concurrently; only the first one launches
        async with self._start_lock:
            if self.browser is not None:
                return self.browser

            logger.info("Starting browser")
            try:
                self.playwright = await async_playwright().start()
                self.browser = await self.playwright.chromium.launch(
                    headless=self.config.headless,
                    executable_path=self.config.executable_path,
                    args=self.config.args
                )
            except Exception as e:
                await self.cleanup()
                raise BrowserError(f"Failed to start browser: {e}", error_code="browser_launch_failed") from e

            logger.info("Browser started")
            return self.browser

    async def open_worker(self, setup: WorkerSetup, on_error: Optional[ErrorListener] = None) -> PageWorker:
        browser = await self.start()
        try:
            page = await browser.new_page(
                viewport={"width": setup.width, "height": setup.height},
                device_scale_factor=1
            )
        except Exception as e:
            raise BrowserError(f"Failed to open a new page: {e}", error_code="page_open_failed") from e

        worker = PageWorker(page, self.config)
        if on_error:
            worker.add_error_listener(on_error)
        try:
            await worker.load(setup)
        except Exception as e:
            await worker.close()
            raise BrowserError(
                f"Failed to load {setup.composition_url}: {e}",
                error_code="navigation_failed"
            ) from e
        finally:
            if on_error:
                worker.remove_error_listener(on_error)

        self.workers_opened += 1
        logger.debug(f"Opened worker {self.workers_opened} for {setup.composition_id}")
        return worker

    async def cleanup(self) -> None:
        """Close the browser if this service launched it"""
        if self.browser is not None and self._owns_browser:
            await self.browser.close()
            logger.info("Browser closed")
        if self._owns_browser:
            self.browser = None

        if self.playwright:
            await self.playwright.stop()
            self.playwright = None
            logger.info("Playwright stopped")

    async def close(self) -> None:
        await self.cleanup()

import json
import logging
import time
from typing import Callable, Optional

from selenium import webdriver
from selenium.common.exceptions import TimeoutException, WebDriverException
from selenium.webdriver.chrome.options import Options
from selenium.webdriver.chrome.service import Service

from pagegrade.features.analysis.schemas.crawl import CrawlResult
from pagegrade.features.analysis.services.extraction.extractor_service import ExtractorService
from pagegrade.platform.config import settings
from pagegrade.platform.exceptions import FetchTimeoutError, NetworkError, UpstreamFetchError

logger = logging.getLogger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


def build_driver() -> webdriver.Chrome:
    chrome_options = Options()
    chrome_options.add_argument("--headless=new")
    chrome_options.add_argument("--disable-gpu")
    chrome_options.add_argument("--no-sandbox")
    chrome_options.add_argument("--disable-dev-shm-usage")
    chrome_options.add_argument(f"--user-agent={USER_AGENT}")
    chrome_options.set_capability("pageLoadStrategy", "eager")  # DOM ready, don't wait for subresources
    # Network events, read back to get the document's HTTP status
    chrome_options.set_capability("goog:loggingPrefs", {"performance": "ALL"})

    if settings.CHROMEDRIVER_PATH:
        driver_service = Service(executable_path=settings.CHROMEDRIVER_PATH)
        return webdriver.Chrome(service=driver_service, options=chrome_options)
    return webdriver.Chrome(options=chrome_options)


def document_status(driver) -> Optional[int]:
    """
    HTTP status of the top-level document, read from Chrome's performance log.

    The first `Network.responseReceived` event of type Document belongs to the
    main frame; redirects are reported separately, so this is the final
    response. Returns None when the log is unavailable.
    """
    try:
        entries = driver.get_log("performance")
    except WebDriverException:
        return None

    for entry in entries:
        try:
            message = json.loads(entry["message"])["message"]
        except (KeyError, TypeError, ValueError):
            continue
        if message.get("method") != "Network.responseReceived":
            continue
        params = message.get("params", {})
        if params.get("type") == "Document":
            return params.get("response", {}).get("status")
    return None


class PageFetcher:
    """
    Loads a page in headless Chrome and turns it into a CrawlResult.

    No retries here; a failed fetch raises and the job-level retry takes over.
    """

    def __init__(
        self,
        timeout: Optional[int] = None,
        driver_factory: Callable[[], webdriver.Chrome] = build_driver,
    ):
        self.timeout = timeout or settings.FETCH_TIMEOUT_SECONDS
        self.driver_factory = driver_factory

    def fetch(self, url: str) -> CrawlResult:
        driver = None
        try:
            driver = self.driver_factory()
            driver.set_page_load_timeout(self.timeout)

            start_time = time.perf_counter()
            driver.get(url)
            load_time_ms = (time.perf_counter() - start_time) * 1000

            html = driver.page_source or ""
            final_url = driver.current_url or url
            status = document_status(driver)

            if status is not None and status >= 400:
                logger.warning(f"{url} responded with HTTP {status}")
                raise UpstreamFetchError(f"Page returned HTTP {status}: {url}")

        except TimeoutException as e:
            logger.warning(f"Timeout loading {url} after {self.timeout}s")
            raise FetchTimeoutError(
                f"Page did not load within {self.timeout} seconds: {url}"
            ) from e
        except WebDriverException as e:
            logger.warning(f"Failed to load {url}: {e.msg}")
            raise NetworkError(f"Could not load {url}: {e.msg}") from e
        finally:
            if driver is not None:
                self._quit(driver)

        return CrawlResult(
            html=html,
            text=ExtractorService.extract_text(html),
            load_time_ms=round(load_time_ms, 1),
            page_size=len(html.encode("utf-8")),
            url=url,
            final_url=final_url,
        )

    @staticmethod
    def _quit(driver) -> None:
        try:
            driver.quit()
        except WebDriverException as e:
            logger.warning(f"Failed to close browser cleanly: {e.msg}")

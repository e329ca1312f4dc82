import json
from unittest.mock import MagicMock

import pytest
from selenium.common.exceptions import TimeoutException, WebDriverException

from pagegrade.features.analysis.services.scraping.page_fetcher import PageFetcher, document_status
from pagegrade.platform.exceptions import FetchTimeoutError, NetworkError, UpstreamFetchError


class TestPageFetcher:
    @pytest.fixture
    def mock_driver(self):
        driver = MagicMock()
        driver.page_source = "<html><body><h1>Héllo</h1><script>x()</script></body></html>"
        driver.current_url = "https://www.example.com/"
        return driver

    def test_fetch_builds_crawl_result(self, mock_driver):
        fetcher = PageFetcher(timeout=12, driver_factory=lambda: mock_driver)

        result = fetcher.fetch("https://example.com")

        mock_driver.set_page_load_timeout.assert_called_once_with(12)
        mock_driver.get.assert_called_once_with("https://example.com")
        assert result.url == "https://example.com"
        assert result.final_url == "https://www.example.com/"
        assert result.html == mock_driver.page_source
        assert result.text == "Héllo"
        # "é" is two bytes in UTF-8
        assert result.page_size == len(mock_driver.page_source) + 1
        assert result.load_time_ms >= 0
        mock_driver.quit.assert_called_once()

    def test_timeout_maps_to_fetch_timeout_error(self, mock_driver):
        mock_driver.get.side_effect = TimeoutException("timed out")
        fetcher = PageFetcher(timeout=5, driver_factory=lambda: mock_driver)

        with pytest.raises(FetchTimeoutError) as exc_info:
            fetcher.fetch("https://slow.example.com")

        assert isinstance(exc_info.value, UpstreamFetchError)
        mock_driver.quit.assert_called_once()

    def test_driver_error_maps_to_network_error(self, mock_driver):
        mock_driver.get.side_effect = WebDriverException("net::ERR_NAME_NOT_RESOLVED")
        fetcher = PageFetcher(driver_factory=lambda: mock_driver)

        with pytest.raises(NetworkError):
            fetcher.fetch("https://does-not-exist.invalid")

        mock_driver.quit.assert_called_once()

    def test_browser_that_fails_to_start_is_a_network_error(self):
        def broken_factory():
            raise WebDriverException("chrome not reachable")

        fetcher = PageFetcher(driver_factory=broken_factory)

        with pytest.raises(NetworkError):
            fetcher.fetch("https://example.com")

    def test_quit_failure_does_not_mask_result(self, mock_driver):
        mock_driver.quit.side_effect = WebDriverException("already gone")
        fetcher = PageFetcher(driver_factory=lambda: mock_driver)

        result = fetcher.fetch("https://example.com")

        assert result.final_url == "https://www.example.com/"

    @pytest.mark.parametrize("status", [404, 500])
    def test_error_status_fails_the_fetch(self, mock_driver, status):
        mock_driver.get_log.return_value = network_log(document_response(status))
        fetcher = PageFetcher(driver_factory=lambda: mock_driver)

        with pytest.raises(UpstreamFetchError) as exc_info:
            fetcher.fetch("https://example.com/missing")

        assert f"HTTP {status}" in exc_info.value.message
        mock_driver.quit.assert_called_once()

    def test_success_status_is_scored(self, mock_driver):
        mock_driver.get_log.return_value = network_log(document_response(200))
        fetcher = PageFetcher(driver_factory=lambda: mock_driver)

        result = fetcher.fetch("https://example.com")

        assert result.final_url == "https://www.example.com/"


def network_log(*events):
    """Performance log entries as chromedriver returns them."""
    return [
        {"level": "INFO", "message": json.dumps({"message": event}), "timestamp": 0}
        for event in events
    ]


def document_response(status, resource_type="Document"):
    return {
        "method": "Network.responseReceived",
        "params": {"type": resource_type, "response": {"status": status, "url": "https://example.com/"}},
    }


class TestDocumentStatus:
    def test_reads_first_document_response(self):
        driver = MagicMock()
        driver.get_log.return_value = network_log(
            {"method": "Network.requestWillBeSent", "params": {}},
            document_response(200, resource_type="Script"),
            document_response(404),
            document_response(200),
        )

        assert document_status(driver) == 404
        driver.get_log.assert_called_once_with("performance")

    def test_missing_log_is_unknown(self):
        driver = MagicMock()
        driver.get_log.side_effect = WebDriverException("log type 'performance' not found")

        assert document_status(driver) is None

    def test_malformed_entries_are_skipped(self):
        driver = MagicMock()
        driver.get_log.return_value = [{"message": "not json"}, {}] + network_log(document_response(200))

        assert document_status(driver) == 200

"""
Run one analysis inline, without Redis or a Celery worker.

    pip install -e .
    python scripts/analyze_url.py https://example.com
"""
import json
import sys
import time

from pagegrade.features.analysis.services.analysis.model_scorer import ModelScorer
from pagegrade.features.analysis.services.analysis.rule_scorer import RuleScorer
from pagegrade.features.analysis.services.orchestration.pipeline import combine_scores
from pagegrade.features.analysis.services.scraping.page_fetcher import PageFetcher
from pagegrade.platform.exceptions import PageGradeError
from pagegrade.platform.utils.url_validator import validate_url


def analyze(raw_url: str) -> int:
    is_valid, url, error_message = validate_url(raw_url)
    if not is_valid:
        print(f"❌ {error_message}")
        return 1

    print("=" * 60)
    print(f"Analyzing {url}")
    print("=" * 60)

    started = time.perf_counter()

    print("\n[1/3] Fetching page...")
    crawl_result = PageFetcher().fetch(url)
    print(f"✓ Loaded in {crawl_result.load_time_ms:.0f}ms")
    print(f"  - Final URL: {crawl_result.final_url}")
    print(f"  - Page size: {crawl_result.page_size / 1024:.1f}KB")
    print(f"  - Text length: {len(crawl_result.text)} chars")

    print("\n[2/3] Running SEO checks...")
    rule_report = RuleScorer().score(crawl_result)
    print(f"✓ SEO score: {rule_report.score}")

    print("\n[3/3] Running AI visibility analysis...")
    model_report = ModelScorer.from_settings().score(crawl_result)
    fallback = " (neutral default)" if model_report.is_fallback else ""
    print(f"✓ AI visibility score: {model_report.score}{fallback}")

    total_score = combine_scores(rule_report.score, model_report.score)
    print("\n" + "=" * 60)
    print(f"Total: {total_score} (SEO: {rule_report.score}, AI: {model_report.score})")
    print(f"Took {time.perf_counter() - started:.1f}s")

    print("\n--- SEO details ---")
    print(json.dumps(rule_report.model_dump(mode="json", by_alias=True), indent=2))
    print("\n--- AI visibility details ---")
    print(json.dumps(model_report.model_dump(mode="json", by_alias=True), indent=2))
    return 0


if __name__ == "__main__":
    target = sys.argv[1] if len(sys.argv) > 1 else "https://example.com"
    try:
        sys.exit(analyze(target))
    except PageGradeError as e:
        print(f"\n❌ Analysis failed: {e.message}")
        sys.exit(1)

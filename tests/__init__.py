"""
Test suite for the YouTube comment graph collector.

Test Organization:
- test_youtube_models.py: CommentRecord, PaginationState, datasource conversion
- test_youtube_fetcher.py: YouTube Data API page fetcher, retry wrapper, item mapping, video ids
- test_collector.py: thread pagination, reply fetching, multi-video collection
- test_mentions.py: mention scan and parent-attribution fallback
- test_network.py: actor network construction
- test_config.py: API key and tunable loading
- utils/test_errors.py: exception hierarchy, retry_with_backoff, WarningsCollector
- utils/test_logging_config.py: structlog JSON logging setup

No test touches the network: the page fetcher is replaced by tests.fakes.FakePageFetcher
and requests is patched for the HTTP fetcher tests.

Run all tests:
    python -m pytest tests/ -v
"""

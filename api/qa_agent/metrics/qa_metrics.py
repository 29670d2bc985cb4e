"""Prometheus metrics for channel Q&A retrieval.

Provides observability into:
- Realtime questions by outcome
- Q&A cache effectiveness
- History crawl duration and size
- Socket Mode connection health
"""

from prometheus_client import Counter, Gauge, Histogram

# ============================================
# Realtime question handling
# ============================================

qa_questions_processed = Counter(
    "qa_questions_processed_total",
    "Questions handled by the realtime processor by outcome",
    ["outcome"],  # answered, not_found, error, duplicate
)

qa_thread_answers_learned = Counter(
    "qa_thread_answers_learned_total",
    "Thread replies that triggered a cache invalidation",
)

qa_search_similarity = Histogram(
    "qa_search_similarity",
    "Similarity score of the best match for answered searches",
    buckets=[0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9, 1.0],
)

# ============================================
# Cache and crawling
# ============================================

qa_cache_lookups = Counter(
    "qa_cache_lookups_total",
    "Q&A cache lookups by result",
    ["result"],  # hit, miss
)

qa_history_crawl_duration_seconds = Histogram(
    "qa_history_crawl_duration_seconds",
    "Duration of channel history crawls",
    buckets=[0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0],
)

qa_history_entries_crawled = Counter(
    "qa_history_entries_crawled_total",
    "Q&A entries produced by history crawls",
)

qa_platform_api_errors = Counter(
    "qa_platform_api_errors_total",
    "Messaging platform API failures by method",
    ["method"],
)

# ============================================
# Socket Mode connection
# ============================================

slack_socket_connection_status = Gauge(
    "slack_socket_connection_status",
    "Socket Mode connection status (1=connected, 0=disconnected)",
)

slack_socket_reconnects = Counter(
    "slack_socket_reconnects_total",
    "Socket Mode reconnect attempts",
)

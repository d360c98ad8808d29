"""Application-wide constants.

Contains configuration constants used across the codebase to avoid magic numbers
and maintain consistency.
"""

# Model Routing
MODEL_ROUTING_VERSION = "2026-02-14.v1"  # Bumped whenever task routing changes
DEFAULT_AUTO_MODEL = "openrouter/auto"  # Provider-side automatic model selection
DEFAULT_REVIEW_MODEL = "anthropic/claude-opus-4.1"  # Higher-capability reviewer
DEFAULT_PRICE_PER_1K_INPUT = 0.01  # USD per 1K prompt tokens for unknown models
DEFAULT_PRICE_PER_1K_OUTPUT = 0.03  # USD per 1K completion tokens for unknown models

# Generation Defaults
DEFAULT_TEMPERATURE = 0.7  # Default sampling temperature
DEFAULT_MAX_TOKENS = 4096  # Default completion token cap
DEFAULT_REQUEST_TIMEOUT_SECONDS = 120  # Per-request provider timeout
JSON_ONLY_INSTRUCTION = "Respond with valid JSON only. No markdown, no code blocks, just raw JSON."

# Retry Policy
DEFAULT_MAX_ATTEMPTS = 3  # Attempts per model, including the first call
DEFAULT_RETRY_BASE_DELAY = 1.0  # Seconds before the first retry
DEFAULT_RETRY_MAX_DELAY = 30.0  # Backoff cap in seconds

# Circuit Breaker
BREAKER_FAILURE_THRESHOLD = 5  # Consecutive failures before opening
BREAKER_RESET_TIMEOUT_SECONDS = 30.0  # Cool-down before half-open probing
BREAKER_HALF_OPEN_MAX_ATTEMPTS = 3  # Concurrent trial calls allowed while half-open
BREAKER_SUCCESS_THRESHOLD = 2  # Half-open successes needed to close

# Research Cache
RESEARCH_CACHE_TTL_HOURS = 72  # Lifetime of a cached research payload
RESEARCH_CACHE_STALENESS_HOURS = 72  # Max fetch age considered fresh
RESEARCH_CACHE_TOP_N = 5  # Entries merged into one lookup result
RESEARCH_CACHE_MAX_SCAN = 50  # Candidate rows scanned per lookup
RESEARCH_CACHE_MODEL = "cachedKnowledgeBase"
RESEARCH_CACHE_PROMPT_VERSION = "research-cache.v1"
RESEARCH_QUERY_TOKEN_MIN_LENGTH = 3
RESEARCH_QUERY_MAX_TOKENS = 8

# Quality Gates
BURSTINESS_THRESHOLD = 0.35  # Minimum stddev/mean of sentence lengths
BURSTINESS_MIN_SENTENCES = 5  # Below this the estimator passes trivially
BURSTINESS_MIN_WORDS_PER_SENTENCE = 3
FINGERPRINT_SHINGLE_SIZE = 3  # Words per shingle
FINGERPRINT_TOP_SHINGLES = 100  # Shingles kept in a signature
FINGERPRINT_HASH_LENGTH = 16  # Hex chars kept per shingle hash
DUPLICATE_SIMILARITY_THRESHOLD = 0.4  # Cross-domain warning threshold
CROSS_DOMAIN_SCAN_LIMIT = 500  # Other-domain articles compared per check

# Stages
DRAFT_MIN_WORDS = 100  # Shorter drafts are treated as refusals
INTERNAL_LINK_LIMIT = 20  # Published articles offered as link targets
META_PROMPT_CONTENT_CHARS = 1000  # Body excerpt sent to the meta prompt
YMYL_CONTENT_SCAN_CHARS = 3000  # Body excerpt scanned for YMYL terms
REVIEW_TEMPERATURE = 0.1
REVIEW_MAX_TOKENS = 1200
KEYWORD_SLUG_ATTEMPTS = 25  # Unique slug suffixes tried for a new article

# Worker
WORKER_BATCH_SIZE = 5  # Jobs claimed per poll
WORKER_POLL_INTERVAL_SECONDS = 5.0
WORKER_LOCK_DURATION_MINUTES = 5
WORKER_JOB_TIMEOUT_MINUTES = 10
WORKER_STALE_CHECK_INTERVAL_SECONDS = 60.0
JOB_DEFAULT_PRIORITY = 5
JOB_MAX_BACKOFF_MINUTES = 30  # Cap on exponential re-queue delay
JOB_PURGE_AFTER_DAYS = 30

# Logging
MAX_ERROR_DISPLAY = 5  # Maximum number of errors to display in logs
PROMPT_PREVIEW_CHARS = 500  # Raw output kept in parse error messages

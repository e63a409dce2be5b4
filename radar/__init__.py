"""
Mention Radar core package.

Modules
───────
models      — Pydantic data models (Message, Topic, LoaderState, SearchPage)
errors      — ConfigurationError / NetworkError / ParseError
http        — requests-based HTTP client with bounded retry
topsy       — Topsy trackback search client
fetcher     — raw page fetcher used for topic naming
loader      — paginated trackback loading with watermark cutoff
aggregator  — groups messages into topics named from page titles
store       — SQLite-backed topics, messages and watermarks
pipeline    — one load → aggregate → save-watermark cycle
"""

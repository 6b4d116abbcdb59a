"""
The `config` package turns the environment into typed settings and a ready
SQLAlchemy engine.

Contents:
    - config: `Settings` (pydantic-settings, `.env` fallback) and the `settings`
      singleton: OpenAI key and model, judge deadline and retry policy,
      database URL, CORS origin, conversation defaults, log level and the
      optional LangSmith passthrough.
    - connection_engine: engine built from `settings.DATABASE_URL` (SQLite gets
      same-thread sharing, foreign keys and SAVEPOINT-safe transactions), the
      shared `metadata`, `declarativeBase` and `init_db`.
"""

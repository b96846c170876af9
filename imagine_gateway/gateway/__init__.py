"""Multi-provider generation gateway.

Provides async infrastructure for dispatching image-generation and chat
requests to heterogeneous AI providers with:
  - Provider Registry (presets + user-added providers, credential precedence)
  - Sliding-window Rate Limiter (one rule per logical action)
  - Response Cache (TTL, bounded, insertion-order eviction)
  - Deadline-bound Transport (distinct timeout errors)
  - Bounded-concurrency Request Queue (FIFO start order)
  - Provider Adapters (OpenAI-compatible / Google native translation)
"""

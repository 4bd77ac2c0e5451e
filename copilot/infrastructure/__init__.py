"""Infrastructure: LLM providers and backend resource clients."""

"""Agent package — orchestration loop, extractor, confirmation gate."""

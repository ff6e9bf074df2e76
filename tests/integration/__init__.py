"""Integration tests: orchestration across config, prompts and both validation tiers."""

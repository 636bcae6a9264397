"""llm.adapters subpackage."""

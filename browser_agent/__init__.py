"""Browser task agent: LLM tool-calling loop, sub-agents and evaluator."""

__version__ = "0.1.0"

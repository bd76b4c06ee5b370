"""paper-architect: three-step academic writing assistant over streaming LLM APIs."""

__version__ = "0.1.0"

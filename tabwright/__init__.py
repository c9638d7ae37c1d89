"""tabwright - AI-assisted browser tab organization.

Normalizes calls across LLM providers, validates model-produced tab
assignments, and runs the content-enriched analysis pipeline.
"""

__version__ = "0.3.0"

__all__ = ["__version__"]

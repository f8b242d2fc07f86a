"""bluebookify - LLM-assisted Bluebook citation correction that edits only the citations."""

from .extractor import extract_citations
from .pipeline import bluebookify
from .prompt import build_messages

__all__ = ["bluebookify", "build_messages", "extract_citations"]

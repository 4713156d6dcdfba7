"""
vectorchat

Conversational question answering over vector collections.

Pipeline:
- Reformulate the question against the conversation context (pronouns,
  elided collections)
- Classify intent (count, filter, aggregate, search) with deterministic rules
- Search the vector collection, degrading gracefully when retrieval fails
- Synthesize a deterministic answer and return the next conversation context

Usage:
    from vectorchat.common import load_config
    from vectorchat.api import QueryController, build_controller
    from vectorchat.retriever import NLPService, Searcher, Synthesizer
"""

__version__ = "0.1.0"

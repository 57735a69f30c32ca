"""
Taste-based plan suggestions for groups of friends.

The package provides:
    * a taste profile extractor over stored reviews (ranked tags, liked venues),
    * an LLM suggestion generator with a tiered parser for non-conforming output,
    * place enrichment through geocoding and text search,
    * a FastAPI service exposing the suggest/feed pipeline and the review,
      friend and user endpoints backed by Supabase.
"""

__version__ = "1.0.0"

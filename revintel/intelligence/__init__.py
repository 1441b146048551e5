"""
Research and synthesis module for revintel.

Provides the budgeted web search batch, the two-stage generative research
flow, and the normalizer that turns model output into a complete report.
"""

from .pipeline import ResearchPipeline, run_research
from .research_models import PipelineState, ResearchResult

__all__ = ["ResearchPipeline", "run_research", "PipelineState", "ResearchResult"]

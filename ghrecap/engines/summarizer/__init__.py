"""Summary generator — formats the merged activity and streams model output."""

from ghrecap.engines.summarizer.generator import DONE_SENTINEL, SummaryGenerator
from ghrecap.engines.summarizer.prompt import build_summary_prompt

__all__ = ["DONE_SENTINEL", "SummaryGenerator", "build_summary_prompt"]

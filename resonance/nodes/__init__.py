"""
LangGraph nodes for the series generation pipeline
"""
from .dedup import dedup_local_node, dedup_shared_node, quota_gate_node
from .extract import extract_node, load_book_text
from .planner import planner_node
from .episodes import episodes_node, generate_episode
from .finalize import finalize_node, summarize_run

__all__ = [
    "dedup_local_node",
    "dedup_shared_node",
    "quota_gate_node",
    "extract_node",
    "load_book_text",
    "planner_node",
    "episodes_node",
    "generate_episode",
    "finalize_node",
    "summarize_run",
]

"""
LangGraph StateGraph assembly for series generation
"""
from langgraph.graph import StateGraph, END

from .context import AppContext, ProgressReporter
from .state import SeriesState
from .nodes.dedup import dedup_local_node, dedup_shared_node, quota_gate_node
from .nodes.extract import extract_node
from .nodes.planner import planner_node
from .nodes.episodes import episodes_node
from .nodes.finalize import finalize_node


def should_continue_after_dedup(state: SeriesState) -> str:
    """
    dedup 적중(existing/recovered)이면 생성 없이 finalize로 갑니다.
    """
    if state.get("outcome") in ("existing", "recovered"):
        return "finalize"
    return "continue"


def create_series_graph(context: AppContext, reporter: ProgressReporter):
    """
    시리즈 생성을 위한 LangGraph StateGraph 생성

    dedup_local → dedup_shared → quota_gate → extract → planner → episodes → finalize

    Args:
        context: 노드가 사용하는 AppContext
        reporter: 이번 실행의 진행 이벤트 전달자

    Returns:
        컴파일된 StateGraph 앱
    """
    async def dedup_local(state: SeriesState) -> dict:
        return await dedup_local_node(state, context)

    async def dedup_shared(state: SeriesState) -> dict:
        return await dedup_shared_node(state, context)

    async def quota_gate(state: SeriesState) -> dict:
        return await quota_gate_node(state, context)

    async def extract(state: SeriesState) -> dict:
        return await extract_node(state, context)

    async def planner(state: SeriesState) -> dict:
        return await planner_node(state, context, reporter)

    async def episodes(state: SeriesState) -> dict:
        return await episodes_node(state, context, reporter)

    async def finalize(state: SeriesState) -> dict:
        return await finalize_node(state, context, reporter)

    workflow = StateGraph(SeriesState)

    workflow.add_node("dedup_local", dedup_local)
    workflow.add_node("dedup_shared", dedup_shared)
    workflow.add_node("quota_gate", quota_gate)
    workflow.add_node("extract", extract)
    workflow.add_node("planner", planner)
    workflow.add_node("episodes", episodes)
    workflow.add_node("finalize", finalize)

    workflow.set_entry_point("dedup_local")

    workflow.add_conditional_edges(
        "dedup_local",
        should_continue_after_dedup,
        {"finalize": "finalize", "continue": "dedup_shared"},
    )
    workflow.add_conditional_edges(
        "dedup_shared",
        should_continue_after_dedup,
        {"finalize": "finalize", "continue": "quota_gate"},
    )

    workflow.add_edge("quota_gate", "extract")
    workflow.add_edge("extract", "planner")
    workflow.add_edge("planner", "episodes")
    workflow.add_edge("episodes", "finalize")
    workflow.add_edge("finalize", END)

    return workflow.compile()

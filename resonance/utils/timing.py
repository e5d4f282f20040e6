"""
Workflow timing utilities for the Resonance series generator
"""
import time
import json
import threading
from datetime import datetime
from pathlib import Path
from typing import Optional

from ..config import LOG_DIR
from ..core.constants import TIMING_LOG_DIR, TIMING_LOG_PREFIX
from .logging import log_error


# run_id별 스텝 타이밍 기록
_workflow_timing_data: dict = {}
_workflow_timing_lock = threading.Lock()


def _fmt(ts: float) -> str:
    return datetime.fromtimestamp(ts).strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]


def log_workflow_step_start(step_name: str, run_id: str = "default") -> float:
    """
    워크플로우 스텝 시작 시간을 기록합니다.

    Args:
        step_name: 스텝 이름 (예: "dedup_local", "planner", "episodes")
        run_id: 실행 단위 식별자 (보통 job id)

    Returns:
        시작 시간 (timestamp)
    """
    start_time = time.time()
    with _workflow_timing_lock:
        steps = _workflow_timing_data.setdefault(run_id, {})
        steps.setdefault(step_name, []).append({
            "start_time": start_time,
            "start_time_str": _fmt(start_time),
            "end_time": None,
            "end_time_str": None,
            "duration_seconds": None,
        })
    return start_time


def log_workflow_step_end(step_name: str, run_id: str = "default") -> float:
    """
    가장 최근에 시작된 (아직 끝나지 않은) 스텝을 완료 처리합니다.

    Returns:
        소요 시간 (초), 기록이 없으면 0.0
    """
    end_time = time.time()
    with _workflow_timing_lock:
        entries = _workflow_timing_data.get(run_id, {}).get(step_name, [])
        for entry in reversed(entries):
            if entry["end_time"] is None:
                entry["end_time"] = end_time
                entry["end_time_str"] = _fmt(end_time)
                entry["duration_seconds"] = end_time - entry["start_time"]
                return entry["duration_seconds"]
    return 0.0


def get_workflow_timing_summary(run_id: str = "default") -> dict:
    """
    run_id의 스텝별 마지막 완료 기록을 반환합니다.
    """
    with _workflow_timing_lock:
        summary = {}
        for step_name, entries in _workflow_timing_data.get(run_id, {}).items():
            completed = [e for e in entries if e["duration_seconds"] is not None]
            if completed:
                latest = completed[-1]
                summary[step_name] = {
                    "duration_seconds": latest["duration_seconds"],
                    "start_time_str": latest["start_time_str"],
                    "end_time_str": latest["end_time_str"],
                }
        return summary


def clear_workflow_timing(run_id: str) -> None:
    with _workflow_timing_lock:
        _workflow_timing_data.pop(run_id, None)


def save_workflow_timing_log(run_id: str = "default") -> Optional[Path]:
    """
    run_id의 타이밍 데이터를 JSON 파일로 저장합니다.

    Returns:
        저장된 파일 경로 (실패 시 None)
    """
    try:
        logs_dir = LOG_DIR / TIMING_LOG_DIR
        logs_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = logs_dir / f"{TIMING_LOG_PREFIX}{timestamp}.json"

        with _workflow_timing_lock:
            steps = {name: list(entries) for name, entries in _workflow_timing_data.get(run_id, {}).items()}

        stats = {}
        for step_name, entries in steps.items():
            durations = [e["duration_seconds"] for e in entries if e["duration_seconds"] is not None]
            if durations:
                stats[step_name] = {
                    "count": len(durations),
                    "total_seconds": sum(durations),
                    "avg_seconds": sum(durations) / len(durations),
                    "min_seconds": min(durations),
                    "max_seconds": max(durations),
                }

        with open(log_file, "w", encoding="utf-8") as f:
            json.dump(
                {"timestamp": datetime.now().isoformat(), "run_id": run_id, "steps": steps, "statistics": stats},
                f,
                ensure_ascii=False,
                indent=2,
            )
        return log_file
    except OSError as e:
        log_error(f"Failed to save workflow timing log: {e}", context="save_workflow_timing_log", exception=e)
        return None

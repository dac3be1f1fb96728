"""Per-run tool loop trace logger: records every model call and tool execution.

Why: When a run misbehaves we need to see exactly what the model was sent,
what it replied, which calls were resolved and what each tool returned,
without truncation.  Each run gets its own timestamped folder::

    logs/run_20261019_150000/
        llm_api_call_trace.jsonl
        tool_execution_trace.jsonl
        tool_loop_iteration_trace.jsonl
        unified_event_log.jsonl
"""

import json
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Union


class PerRunToolLoopTraceLogger:
    """Thread-safe JSONL trace logger writing into one run directory."""

    def __init__(self, run_directory: Path):
        run_directory.mkdir(parents=True, exist_ok=True)
        self._run_directory = run_directory
        dir_name = run_directory.name
        self._run_id = dir_name.replace("run_", "") if dir_name.startswith("run_") else dir_name
        self._session_key: str = ""
        self._llm_trace_file = open(
            run_directory / "llm_api_call_trace.jsonl", "w", encoding="utf-8", buffering=1)
        self._tool_trace_file = open(
            run_directory / "tool_execution_trace.jsonl", "w", encoding="utf-8", buffering=1)
        self._iteration_trace_file = open(
            run_directory / "tool_loop_iteration_trace.jsonl", "w", encoding="utf-8", buffering=1)
        self._unified_event_file = open(
            run_directory / "unified_event_log.jsonl", "w", encoding="utf-8", buffering=1)
        self._call_counter = 0
        self._lock = threading.Lock()

    @classmethod
    def create_for_new_run(cls, base_directory: Union[str, Path]) -> "PerRunToolLoopTraceLogger":
        """Create a logger in ``base_directory/run_<timestamp>``."""
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return cls(Path(base_directory) / f"run_{stamp}")

    @property
    def run_directory(self) -> Path:
        return self._run_directory

    def set_session_context(self, session_key: str) -> None:
        """Tag subsequent records with a chat/session key."""
        self._session_key = session_key

    # ── Internal helpers ─────────────────────────────────────────────────

    def _next_call_id(self) -> int:
        with self._lock:
            self._call_counter += 1
            return self._call_counter

    def _write_record(self, file_handle, record: Dict[str, Any]) -> None:
        """Write one JSONL line, plus a compact line in the unified event log."""
        record["run_id"] = self._run_id
        record["session"] = self._session_key
        line = json.dumps(record, ensure_ascii=False, default=str) + "\n"
        unified = {
            "ts": record.get("timestamp", datetime.now().isoformat()),
            "run_id": self._run_id,
            "session": self._session_key,
            "seq": record.get("call_id", 0),
            "event_type": record.get("type", "unknown"),
            "summary": self._build_summary(record),
        }
        uline = json.dumps(unified, ensure_ascii=False, default=str) + "\n"
        with self._lock:
            file_handle.write(line)
            file_handle.flush()
            self._unified_event_file.write(uline)
            self._unified_event_file.flush()

    @staticmethod
    def _build_summary(record: Dict[str, Any]) -> str:
        rtype = record.get("type", "")
        if rtype == "llm_api_call":
            return (f"provider={record.get('provider', '')} "
                    f"model={record.get('model', '')} "
                    f"elapsed={record.get('elapsed_ms', '')}ms "
                    f"status={record.get('status', '')}")
        if rtype == "tool_execution":
            return (f"tool={record.get('tool_name', '')} "
                    f"error={record.get('is_error', False)} "
                    f"silent={record.get('silent', False)} "
                    f"elapsed={record.get('elapsed_ms', '')}ms")
        if rtype == "tool_loop_iteration":
            details = record.get("details", {})
            return (f"iter={record.get('iteration', '')} "
                    f"status={details.get('status', '')} "
                    f"protocol={details.get('protocol', '')} "
                    f"calls={details.get('tool_call_count', 0)}")
        return record.get("summary", "")

    # ── Public recorders ─────────────────────────────────────────────────

    def record_event(self, event_type: str, summary: str, details: Optional[Dict[str, Any]] = None) -> None:
        """Record a free-form event in the unified log only."""
        line = json.dumps({
            "ts": datetime.now().isoformat(),
            "run_id": self._run_id,
            "session": self._session_key,
            "seq": self._next_call_id(),
            "event_type": event_type,
            "summary": summary,
            "details": details or {},
        }, ensure_ascii=False, default=str) + "\n"
        with self._lock:
            self._unified_event_file.write(line)
            self._unified_event_file.flush()

    def record_llm_api_call(
        self,
        provider: str,
        model: str,
        request_payload: Any,
        response_payload: Any,
        elapsed_ms: int,
        status: str = "success",
        error: str = "",
    ) -> None:
        self._write_record(self._llm_trace_file, {
            "type": "llm_api_call",
            "call_id": self._next_call_id(),
            "timestamp": datetime.now().isoformat(),
            "provider": provider,
            "model": model,
            "request": request_payload,
            "response": response_payload,
            "elapsed_ms": elapsed_ms,
            "status": status,
            "error": error,
        })

    def record_tool_execution(
        self,
        tool_name: str,
        tool_call_id: str,
        arguments: Any,
        for_model: str,
        is_error: bool,
        elapsed_ms: int,
        for_observer: str = "",
        silent: bool = False,
    ) -> None:
        self._write_record(self._tool_trace_file, {
            "type": "tool_execution",
            "call_id": self._next_call_id(),
            "timestamp": datetime.now().isoformat(),
            "tool_name": tool_name,
            "tool_call_id": tool_call_id,
            "arguments": arguments,
            "result": for_model,
            "observer_text": for_observer,
            "is_error": is_error,
            "silent": silent,
            "elapsed_ms": elapsed_ms,
        })

    def record_tool_loop_iteration_trace(self, iteration: int, details: Dict[str, Any]) -> None:
        self._write_record(self._iteration_trace_file, {
            "type": "tool_loop_iteration",
            "call_id": self._next_call_id(),
            "timestamp": datetime.now().isoformat(),
            "iteration": iteration,
            "details": details,
        })

    def close(self) -> None:
        with self._lock:
            for handle in (
                self._llm_trace_file,
                self._tool_trace_file,
                self._iteration_trace_file,
                self._unified_event_file,
            ):
                handle.close()

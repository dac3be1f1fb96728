#!/usr/bin/env python3
"""Run one prompt through the tool loop and print the final answer.

Examples::

    python scripts/run_single_prompt.py "Find three recent papers on retrieval-augmented generation"
    python scripts/run_single_prompt.py --config configs/config.yaml --max-iterations 4 "..."
"""

import argparse
import logging
import sys
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(BASE_DIR))

from summer_agent.agent_runtime_builder import answer_single_prompt, build_agent_runtime, load_agent_config
from summer_agent.errors import (
    ConfigurationError,
    LLMProviderError,
    ToolLoopCancelledError,
    ToolLoopIterationsExhaustedError,
)
from summer_agent.utils.loop_logging import configure_logging

logger = logging.getLogger("run_single_prompt")


def main() -> int:
    parser = argparse.ArgumentParser(description="Run a single prompt through the SummerAgent tool loop.")
    parser.add_argument("prompt", help="User prompt")
    parser.add_argument("--config", default=None, help="Path to config.yaml")
    parser.add_argument("--max-iterations", type=int, default=None, help="Override tool_loop.max_iterations")
    parser.add_argument("--log-file", default=None, help="Also write logs to this file")
    args = parser.parse_args()

    try:
        config = load_agent_config(args.config)
    except ConfigurationError as exc:
        print(f"Config error: {exc}", file=sys.stderr)
        return 2

    configure_logging((config.get("logging", {}) or {}).get("level", "INFO"), args.log_file)
    if args.max_iterations is not None:
        config.setdefault("tool_loop", {})["max_iterations"] = args.max_iterations

    try:
        runtime = build_agent_runtime(config=config)
    except ConfigurationError as exc:
        print(f"Config error: {exc}", file=sys.stderr)
        return 2

    try:
        result = answer_single_prompt(runtime, args.prompt, channel="cli", chat_id="local")
    except ToolLoopIterationsExhaustedError as exc:
        print(f"Stopped after {exc.iterations_used} iterations without a final answer.", file=sys.stderr)
        if exc.last_content:
            print(exc.last_content)
        return 3
    except ToolLoopCancelledError as exc:
        print(f"Cancelled: {exc}", file=sys.stderr)
        return 130
    except LLMProviderError as exc:
        print(f"Model error: {exc}", file=sys.stderr)
        return 1
    finally:
        if runtime.trace_logger:
            runtime.trace_logger.close()

    print(result.content)
    logger.info("Finished in %d iteration(s)", result.iterations)

    while True:
        outbound = runtime.message_bus.consume_outbound(timeout=0)
        if outbound is None:
            break
        print(f"[outbound -> {outbound.channel}:{outbound.chat_id}] {outbound.content} {outbound.file_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""Tests for config loading and runtime wiring."""

import json

import pytest
import yaml

from summer_agent.agent_runtime_builder import (
    ALL_TOOL_NAMES,
    API_KEY_ENV_VAR,
    answer_single_prompt,
    build_agent_runtime,
    build_provider,
    load_agent_config,
)
from summer_agent.errors import ConfigurationError
from summer_agent.providers.claude_cli_provider import ClaudeCliProvider
from summer_agent.providers.openai_compatible_chat_provider import OpenAICompatibleChatProvider


def _write_config(tmp_path, data):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return str(path)


def _base_config(tmp_path, **overrides):
    config = {
        "base_model": {"provider": "openai_compatible", "api_url": "http://x", "api_key": "k", "model_id": "m"},
        "tool_loop": {"max_iterations": 4, "include_tool_instructions": True},
        "workspace": {"path": str(tmp_path / "ws")},
        "logging": {"level": "INFO"},
    }
    config.update(overrides)
    return config


def test_load_config_and_env_override(tmp_path, monkeypatch):
    path = _write_config(tmp_path, {"base_model": {"api_key": "from-file"}})
    monkeypatch.setenv(API_KEY_ENV_VAR, "from-env")
    assert load_agent_config(path)["base_model"]["api_key"] == "from-env"

    monkeypatch.delenv(API_KEY_ENV_VAR)
    assert load_agent_config(path)["base_model"]["api_key"] == "from-file"


def test_load_config_errors(tmp_path):
    with pytest.raises(ConfigurationError):
        load_agent_config(str(tmp_path / "missing.yaml"))

    bad = tmp_path / "bad.yaml"
    bad.write_text("base_model: [unclosed", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_agent_config(str(bad))

    scalar = tmp_path / "scalar.yaml"
    scalar.write_text("just a string", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_agent_config(str(scalar))


def test_build_provider_variants(tmp_path):
    assert isinstance(build_provider(_base_config(tmp_path)), OpenAICompatibleChatProvider)

    cli = build_provider(_base_config(tmp_path, base_model={"provider": "claude_cli", "timeout": 30}))
    assert isinstance(cli, ClaudeCliProvider)
    assert cli.workspace == str(tmp_path / "ws")

    with pytest.raises(ConfigurationError):
        build_provider(_base_config(tmp_path, base_model={"provider": "openai_compatible"}))
    with pytest.raises(ConfigurationError):
        build_provider(_base_config(tmp_path, base_model={"provider": "carrier_pigeon"}))


def test_runtime_registers_all_tools_by_default(tmp_path):
    runtime = build_agent_runtime(config=_base_config(tmp_path))
    assert runtime.registry.get_all_registered_tool_names() == list(ALL_TOOL_NAMES)
    assert runtime.trace_logger is None

    loop_config = runtime.build_loop_config()
    assert loop_config.max_iterations == 4
    assert loop_config.include_tool_instructions is True
    assert loop_config.model == "m"


def test_unknown_tool_is_a_configuration_error(tmp_path):
    with pytest.raises(ConfigurationError, match="teleport"):
        build_agent_runtime(config=_base_config(tmp_path, tools={"enabled": ["write_file", "teleport"]}))


def test_cli_provider_skips_duplicate_instructions(tmp_path):
    runtime = build_agent_runtime(
        config=_base_config(tmp_path, base_model={"provider": "claude_cli"}),
    )
    assert runtime.build_loop_config().include_tool_instructions is False


def test_trace_dir_creates_run_logger(tmp_path):
    config = _base_config(tmp_path, logging={"trace_dir": str(tmp_path / "logs")})
    runtime = build_agent_runtime(config=config)
    try:
        assert runtime.trace_logger.run_directory.parent == tmp_path / "logs"
    finally:
        runtime.trace_logger.close()


def test_answer_single_prompt_writes_file_through_loop(tmp_path, make_provider):
    envelope = (
        '{"tool_calls":[{"id":"c1","type":"function","function":{"name":"write_file",'
        '"arguments":"{\\"path\\":\\"out.txt\\",\\"content\\":\\"hello\\"}"}}]}'
    )
    provider = make_provider([envelope, "Saved out.txt"])
    config = _base_config(tmp_path, tools={"enabled": ["write_file"]})
    runtime = build_agent_runtime(config=config, provider=provider)

    result = answer_single_prompt(runtime, "save hello", channel="cli", chat_id="1")

    assert result.content == "Saved out.txt"
    assert result.iterations == 2
    assert (tmp_path / "ws" / "out.txt").read_text(encoding="utf-8") == "hello"
    assert provider.requests[0][0].role == "system"


def test_answer_single_prompt_tags_trace_with_chat_session(tmp_path, make_provider):
    envelope = (
        '{"tool_calls":[{"id":"c1","type":"function","function":{"name":"write_file",'
        '"arguments":"{\\"path\\":\\"a.txt\\",\\"content\\":\\"x\\"}"}}]}'
    )
    config = _base_config(
        tmp_path,
        tools={"enabled": ["write_file"]},
        logging={"trace_dir": str(tmp_path / "logs")},
    )
    runtime = build_agent_runtime(config=config, provider=make_provider([envelope, "done"]))
    try:
        answer_single_prompt(runtime, "save x", channel="telegram", chat_id="42")
    finally:
        runtime.trace_logger.close()

    run_dir = runtime.trace_logger.run_directory
    lines = (run_dir / "tool_execution_trace.jsonl").read_text(encoding="utf-8").splitlines()
    (record,) = [json.loads(line) for line in lines if line]
    assert record["tool_name"] == "write_file"
    assert record["session"] == "telegram:42"

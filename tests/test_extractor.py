"""Tests for toolpilot.agent.extractor."""

from toolpilot.agent.extractor import extract_tool_calls


def test_no_calls_in_plain_text():
    assert extract_tool_calls("Just an answer, no tools needed.") == []


def test_single_inline_call():
    calls = extract_tool_calls('Let me check. [TOOL_CALL]echo: {"message": "hi"}[/TOOL_CALL]')
    assert len(calls) == 1
    assert calls[0].name == "echo"
    assert calls[0].parameters == {"message": "hi"}
    assert calls[0].error is None
    assert calls[0].id


def test_multiline_call():
    content = (
        "[TOOL_CALL]\n"
        "write_file: {\n"
        '  "path": "/tmp/a.txt",\n'
        '  "content": "line1\\nline2"\n'
        "}\n"
        "[/TOOL_CALL]"
    )
    calls = extract_tool_calls(content)
    assert calls[0].name == "write_file"
    assert calls[0].parameters == {"path": "/tmp/a.txt", "content": "line1\nline2"}


def test_calls_keep_textual_order():
    content = (
        '[TOOL_CALL]first: {"n": 1}[/TOOL_CALL] then '
        '[TOOL_CALL]second: {"n": 2}[/TOOL_CALL] and '
        '[TOOL_CALL]third: {"n": 3}[/TOOL_CALL]'
    )
    assert [c.name for c in extract_tool_calls(content)] == ["first", "second", "third"]


def test_each_call_gets_distinct_id():
    content = '[TOOL_CALL]a: {}[/TOOL_CALL][TOOL_CALL]a: {}[/TOOL_CALL]'
    calls = extract_tool_calls(content)
    assert calls[0].id != calls[1].id


def test_nested_json_parameters():
    content = '[TOOL_CALL]configure: {"options": {"depth": {"max": 3}}, "tags": ["a", "b"]}[/TOOL_CALL]'
    call = extract_tool_calls(content)[0]
    assert call.parameters == {"options": {"depth": {"max": 3}}, "tags": ["a", "b"]}


def test_malformed_json_is_isolated():
    content = (
        '[TOOL_CALL]good: {"x": 1}[/TOOL_CALL]'
        '[TOOL_CALL]bad: {"x": [/TOOL_CALL]'
        '[TOOL_CALL]also_good: {"y": 2}[/TOOL_CALL]'
    )
    calls = extract_tool_calls(content)
    assert [c.name for c in calls] == ["good", "bad", "also_good"]
    assert calls[0].error is None
    assert calls[1].error is not None
    assert "invalid JSON" in calls[1].error
    assert calls[2].parameters == {"y": 2}


def test_non_object_parameters_rejected():
    call = extract_tool_calls('[TOOL_CALL]echo: ["hi"][/TOOL_CALL]')[0]
    assert call.name == "echo"
    assert "JSON object" in call.error


def test_missing_name_is_malformed():
    call = extract_tool_calls('[TOOL_CALL]{"message": "hi"}[/TOOL_CALL]')[0]
    assert call.name == ""
    assert call.error.startswith("Malformed tool call")


def test_missing_parameters_is_malformed():
    call = extract_tool_calls("[TOOL_CALL]echo:[/TOOL_CALL]")[0]
    assert call.name == "echo"
    assert "missing JSON" in call.error


def test_unclosed_span_ignored():
    assert extract_tool_calls('[TOOL_CALL]echo: {"message": "hi"}') == []


def test_code_block_ignored_without_known_tools():
    content = '```json\n[{"name": "echo", "parameters": {"message": "hi"}}]\n```'
    assert extract_tool_calls(content) == []


def test_code_block_for_known_tools():
    content = (
        "I'll run these:\n"
        "```json\n"
        '[{"name": "echo", "parameters": {"message": "hi"}},\n'
        ' {"name": "unknown", "parameters": {}},\n'
        ' {"name": "echo"}]\n'
        "```"
    )
    calls = extract_tool_calls(content, known_tools=["echo"])
    assert [c.name for c in calls] == ["echo", "echo"]
    assert calls[0].parameters == {"message": "hi"}
    assert calls[1].parameters == {}


def test_code_block_and_spans_in_order():
    content = (
        '[TOOL_CALL]first: {}[/TOOL_CALL]\n'
        "```json\n"
        '[{"name": "echo", "parameters": {"message": "middle"}}]\n'
        "```\n"
        '[TOOL_CALL]last: {}[/TOOL_CALL]'
    )
    calls = extract_tool_calls(content, known_tools={"echo", "first", "last"})
    assert [c.name for c in calls] == ["first", "echo", "last"]


def test_code_block_that_is_not_an_array_ignored():
    content = '```json\n{"name": "echo", "parameters": {}}\n```'
    assert extract_tool_calls(content, known_tools=["echo"]) == []

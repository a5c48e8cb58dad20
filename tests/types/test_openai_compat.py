import pytest

from llmloop.types.openai_compat import ChatCompletion, error_detail


@pytest.fixture
def tool_call_response():
    return {
        "id": "chatcmpl-123",
        "object": "chat.completion",
        "created": 1728933352,
        "model": "gpt-4o-mini",
        "choices": [
            {
                "index": 0,
                "message": {
                    "role": "assistant",
                    "content": None,
                    "tool_calls": [
                        {
                            "id": "call_abc",
                            "type": "function",
                            "function": {"name": "get_weather", "arguments": '{"city": "Paris"}'},
                        }
                    ],
                },
                "logprobs": None,
                "finish_reason": "tool_calls",
            }
        ],
        "usage": {"prompt_tokens": 19, "completion_tokens": 10, "total_tokens": 29},
    }


class TestChatCompletion:
    def test_to_turn_with_tool_calls(self, tool_call_response):
        turn = ChatCompletion.model_validate(tool_call_response).to_turn()
        assert turn.finish_reason == "tool_calls"
        assert turn.content is None
        assert turn.tool_calls[0].id == "call_abc"
        assert turn.tool_calls[0].function.name == "get_weather"

    def test_to_turn_text(self):
        completion = ChatCompletion.model_validate(
            {"choices": [{"finish_reason": "length", "message": {"content": "Hello"}}]}
        )
        turn = completion.to_turn()
        assert turn.finish_reason == "length"
        assert turn.content == "Hello"
        assert turn.tool_calls == []


class TestErrorDetail:
    @pytest.mark.parametrize(
        "body, expected",
        [
            ({"detail": "Model not found"}, "Model not found"),
            ({"error": {"message": "Invalid key", "type": "auth"}}, "Invalid key"),
            ({"error": "Unauthorized"}, "Unauthorized"),
            ({"other": 1}, None),
            ("not a dict", None),
        ],
    )
    def test_error_detail(self, body, expected):
        assert error_detail(body) == expected

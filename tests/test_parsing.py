import pytest
from google.genai import types

from conftest import data_url
from nano_agent.errors import DecodeError, ProviderError
from nano_agent.parsing import ChatJSONParser, GeminiResponseParser, decode_data_url

IMG = b"\x89PNG\r\n\x1a\nfake-image-bytes"
B64 = data_url(IMG).split(",", 1)[1]


def chat(message):
    return {"choices": [{"message": message, "finish_reason": "stop"}]}


@pytest.mark.parametrize(
    "response",
    [
        chat({"role": "assistant", "images": [{"type": "image_url", "image_url": {"url": data_url(IMG)}}]}),
        chat({"role": "assistant", "images": [{"image": {"b64_json": B64}}]}),
        chat({"content": [{"type": "image_url", "image_url": {"url": data_url(IMG, "image/jpeg")}}]}),
        chat({"content": [{"type": "output_image", "image": {"b64_json": B64}}]}),
        chat({"content": [{"type": "output_image", "image": {"b64": B64}}]}),
        chat({"content": [{"type": "image", "image": {"url": data_url(IMG)}}]}),
        chat({"content": [{"type": "image", "b64_json": B64}]}),
        chat({"content": data_url(IMG)}),
        {"output": [{"content": [{"type": "output_image", "image": {"b64_json": B64}}]}]},
        {"output": [{"content": [{"type": "image_url", "image_url": {"url": data_url(IMG)}}]}]},
        {"output": [{"content": [{"type": "image", "b64_json": B64}]}]},
        {"data": [{"b64_json": B64}]},
        {"data": [{"url": data_url(IMG)}]},
    ],
)
def test_chat_parser_extracts_image_from_every_shape(response):
    assert ChatJSONParser().parse_image(response) == IMG


def test_chat_parser_skips_text_parts_before_image():
    response = chat({
        "content": [
            {"type": "text", "text": "Here you go"},
            {"type": "image_url", "image_url": {"url": data_url(IMG)}},
        ]
    })
    result = ChatJSONParser().parse(response)
    assert result.image == IMG
    assert result.text == "Here you go"


def test_chat_parser_ignores_remote_urls():
    response = chat({"content": [{"type": "image_url", "image_url": {"url": "https://example.com/a.png"}}]})
    assert ChatJSONParser().parse_image(response) is None


def test_chat_parser_returns_none_without_image():
    assert ChatJSONParser().parse_image(chat({"content": "I can't draw that."})) is None
    assert ChatJSONParser().parse_image({}) is None
    assert ChatJSONParser().parse_image({"choices": []}) is None


def test_malformed_base64_raises_decode_error():
    with pytest.raises(DecodeError):
        ChatJSONParser().parse_image({"data": [{"b64_json": "not base64!!"}]})
    with pytest.raises(DecodeError):
        decode_data_url("data:image/png;base64,@@@@")


def test_chat_text_prefers_plain_string_content():
    assert ChatJSONParser().parse_text(chat({"content": "a critique"})) == "a critique"


def test_chat_text_joins_text_parts():
    response = chat({
        "content": [
            {"type": "text", "text": "first "},
            {"type": "image_url", "image_url": {"url": data_url(IMG)}},
            {"type": "output_text", "text": "second"},
        ]
    })
    assert ChatJSONParser().parse_text(response) == "first second"


def test_responses_text_concatenated_in_order():
    response = {
        "output": [
            {"content": [{"type": "output_text", "text": "one "}]},
            {"content": [{"type": "text", "text": "two "}, {"type": "output_text", "text": "three"}]},
        ]
    }
    assert ChatJSONParser().parse_text(response) == "one two three"


def test_blank_text_is_not_found():
    assert ChatJSONParser().parse_text(chat({"content": "   "})) is None
    assert ChatJSONParser().parse_text({"output": []}) is None


def test_error_object_short_circuits_parse():
    response = {
        "error": {"message": "Model is overloaded", "code": 503},
        "choices": [{"message": {"content": data_url(IMG)}}],
    }
    with pytest.raises(ProviderError) as exc:
        ChatJSONParser().parse(response)
    assert exc.value.message == "Model is overloaded"
    assert exc.value.status_code == 503


def test_error_object_without_message_still_raises():
    with pytest.raises(ProviderError):
        ChatJSONParser().parse({"error": {}})


def gemini_response(*parts, **kwargs):
    return types.GenerateContentResponse(
        candidates=[types.Candidate(content=types.Content(role="model", parts=list(parts)))],
        **kwargs,
    )


def test_gemini_parser_first_inline_image_and_joined_text():
    response = gemini_response(
        types.Part(text="Here is "),
        types.Part(inline_data=types.Blob(data=IMG, mime_type="image/png")),
        types.Part(inline_data=types.Blob(data=b"second", mime_type="image/png")),
        types.Part(text="your image"),
    )
    result = GeminiResponseParser().parse(response)
    assert result.image == IMG
    assert result.text == "Here is your image"


def test_gemini_parser_text_only():
    result = GeminiResponseParser().parse(gemini_response(types.Part(text="refused")))
    assert result.image is None
    assert result.text == "refused"


def test_gemini_parser_empty_candidates():
    result = GeminiResponseParser().parse(types.GenerateContentResponse(candidates=[]))
    assert result.is_empty


def test_gemini_blocked_prompt_raises():
    response = types.GenerateContentResponse(
        prompt_feedback=types.GenerateContentResponsePromptFeedback(
            block_reason=types.BlockedReason.SAFETY
        )
    )
    with pytest.raises(ProviderError, match="SAFETY"):
        GeminiResponseParser().parse(response)

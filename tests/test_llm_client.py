from unittest import mock

import pytest

from interview_lab.infrastructure.llm import VertexRestClient, LLMError


def make_client():
    client = VertexRestClient(project="research-lab", model="gemini-test")
    client._token = "token-123"
    return client


def vertex_response(text, status_code=200):
    resp = mock.Mock()
    resp.status_code = status_code
    resp.text = "error body"
    resp.json.return_value = {"candidates": [{"content": {"parts": [{"text": part} for part in text]}}]}
    return resp


def test_generate_content_sends_system_instruction():
    client = make_client()

    with mock.patch("requests.post", return_value=vertex_response(["## Identity", "\nResearcher"])) as post:
        text = client.generate_content("Objective", system_instruction="Format it", temperature=0.7)

    assert text == "## Identity\nResearcher"
    url = post.call_args[0][0]
    body = post.call_args[1]["json"]
    assert url.endswith("projects/research-lab/locations/us-central1/publishers/google/models/gemini-test:generateContent")
    assert post.call_args[1]["headers"]["Authorization"] == "Bearer token-123"
    assert body["systemInstruction"] == {"parts": [{"text": "Format it"}]}
    assert body["generationConfig"]["temperature"] == 0.7
    assert body["contents"][0]["parts"][0]["text"] == "Objective"


def test_generate_content_error_status():
    client = make_client()

    with mock.patch("requests.post", return_value=vertex_response([], status_code=403)):
        with pytest.raises(LLMError):
            client.generate_content("Objective")


def test_generate_content_without_candidates_is_empty():
    client = make_client()
    resp = vertex_response([])
    resp.json.return_value = {"promptFeedback": {"blockReason": "SAFETY"}}

    with mock.patch("requests.post", return_value=resp):
        assert client.generate_content("Objective") == ""


def test_generate_json_tolerates_code_fences():
    client = make_client()
    fenced = '```json\n{"summary": "ok", "sentimentScore": 3}\n```'

    with mock.patch("requests.post", return_value=vertex_response([fenced])):
        assert client.generate_json("Analyse") == {"summary": "ok", "sentimentScore": 3}


def test_generate_json_raises_on_garbage():
    client = make_client()

    with mock.patch("requests.post", return_value=vertex_response(["no json here"])):
        with pytest.raises(ValueError):
            client.generate_json("Analyse")

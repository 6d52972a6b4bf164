import pytest
from sqlalchemy.exc import OperationalError

from app import crud
from app.models.api_key import ApiKey
from app.models.prompt import Prompt


def add_openai_key(client, key="sk-test", model="gpt-4o"):
    resp = client.post("/api/settings/openai", json={"key": key, "model": model})
    assert resp.status_code == 200


def enhance(client, **overrides):
    body = {"input": "Build a todo app", "aiTool": "replit", "promptType": "create"}
    body.update(overrides)
    return client.post("/api/enhance", json=body)


def test_enhance_stores_and_returns_prompt(auth_client, fake_openai):
    add_openai_key(auth_client, key="sk-alice")

    resp = enhance(auth_client, context="Use FastAPI")
    assert resp.status_code == 200
    body = resp.json()
    assert body["input"] == "Build a todo app"
    assert body["enhanced"] == "Enhanced prompt text"
    assert body["favorite"] == "false"
    assert body["promptType"] == "create"
    assert body["context"] == "Use FastAPI"
    assert body["imageUrl"] is None
    assert body["timestamp"]

    # The stored per-user key is the one handed to the client
    assert fake_openai.api_keys == ["sk-alice"]
    call = fake_openai.completions[0]
    assert call["model"] == "gpt-4o"
    assert call["temperature"] == 0.7
    assert call["max_tokens"] == 1000
    assert "Additional Context:\nUse FastAPI" in call["messages"][0]["content"]
    assert call["messages"][1] == {"role": "user", "content": "Build a todo app"}


def test_enhance_without_api_key(auth_client, fake_openai, db):
    resp = enhance(auth_client)
    assert resp.status_code == 400
    assert "Please add your API key" in resp.json()["message"]
    assert fake_openai.completions == []
    assert db.query(Prompt).count() == 0


def test_enhance_upstream_failure(auth_client, fake_openai, db):
    add_openai_key(auth_client)
    fake_openai.error = RuntimeError("rate limited")

    resp = enhance(auth_client)
    assert resp.status_code == 500
    assert resp.json() == {"message": "Failed to enhance prompt"}
    assert db.query(Prompt).count() == 0


def test_enhance_validation(auth_client, fake_openai):
    resp = enhance(auth_client, input="")
    assert resp.status_code == 400
    assert resp.json() == {"message": "Please enter a prompt"}

    resp = enhance(auth_client, aiTool="copilot")
    assert resp.status_code == 400

    resp = enhance(auth_client, promptType="rewrite")
    assert resp.status_code == 400

    assert fake_openai.completions == []


def test_image_takes_precedence_over_voice(auth_client, fake_openai):
    add_openai_key(auth_client)

    resp = enhance(
        auth_client,
        imageUrl="https://example.com/shot.png",
        voiceUrl="https://example.com/clip.webm",
    )
    assert resp.status_code == 200
    assert fake_openai.transcriptions == []
    assert fake_openai.downloads == []

    user_turn = fake_openai.completions[0]["messages"][1]
    assert isinstance(user_turn["content"], list)
    kinds = [part["type"] for part in user_turn["content"]]
    assert kinds == ["text", "image_url", "text"]
    assert user_turn["content"][1]["image_url"] == {"url": "https://example.com/shot.png"}
    assert user_turn["content"][2]["text"] == "Build a todo app"


def test_voice_is_transcribed(auth_client, fake_openai):
    add_openai_key(auth_client)

    resp = enhance(auth_client, voiceUrl="https://example.com/clip.webm")
    assert resp.status_code == 200
    assert resp.json()["voiceUrl"] == "https://example.com/clip.webm"

    assert fake_openai.downloads == ["https://example.com/clip.webm"]
    assert fake_openai.transcriptions[0]["model"] == "whisper-1"
    assert fake_openai.transcriptions[0]["file"] == ("clip.webm", b"voice-bytes")
    user_turn = fake_openai.completions[0]["messages"][1]
    assert user_turn["content"] == (
        "Voice Input Transcription:\nbuild me a weather dashboard\n\n"
        "Original Text:\nBuild a todo app"
    )


def test_list_prompts_in_insertion_order(auth_client, fake_openai):
    add_openai_key(auth_client)
    for text in ("first", "second", "third"):
        assert enhance(auth_client, input=text).status_code == 200

    resp = auth_client.get("/api/prompts")
    assert resp.status_code == 200
    assert [p["input"] for p in resp.json()] == ["first", "second", "third"]


def test_prompts_are_isolated_per_user(make_client, signup, fake_openai):
    alice = make_client()
    signup(alice)
    add_openai_key(alice)
    enhance(alice, input="alice prompt")

    bob = make_client()
    signup(bob, email="bob@example.com", name="Bob")
    add_openai_key(bob)
    enhance(bob, input="bob prompt")

    assert [p["input"] for p in alice.get("/api/prompts").json()] == ["alice prompt"]
    assert [p["input"] for p in bob.get("/api/prompts").json()] == ["bob prompt"]


def test_toggle_favorite_is_an_involution(auth_client, fake_openai):
    add_openai_key(auth_client)
    prompt = enhance(auth_client).json()

    first = auth_client.post(f"/api/prompts/{prompt['id']}/favorite")
    assert first.status_code == 200
    assert first.json()["favorite"] == "true"

    second = auth_client.post(f"/api/prompts/{prompt['id']}/favorite")
    assert second.json()["favorite"] == "false"
    assert second.json()["enhanced"] == prompt["enhanced"]


def test_toggle_missing_prompt_is_404(auth_client):
    resp = auth_client.post("/api/prompts/9999/favorite")
    assert resp.status_code == 404
    assert resp.json() == {"message": "Prompt not found"}


def test_cannot_toggle_another_users_prompt(make_client, signup, fake_openai, db):
    alice = make_client()
    signup(alice)
    add_openai_key(alice)
    prompt = enhance(alice).json()

    bob = make_client()
    signup(bob, email="bob@example.com")
    resp = bob.post(f"/api/prompts/{prompt['id']}/favorite")
    assert resp.status_code == 404
    assert db.query(Prompt).one().favorite == "false"


@pytest.mark.parametrize("method,path,body", [
    ("post", "/api/enhance", {"input": "x", "aiTool": "v0", "promptType": "create"}),
    ("get", "/api/prompts", None),
    ("post", "/api/prompts/1/favorite", None),
    ("post", "/api/settings/openai", {"key": "sk", "model": "gpt-4o"}),
    ("get", "/api/settings/openai", None),
    ("get", "/api/settings", None),
    ("post", "/api/settings/openai/model", {"model": "gpt-4o-mini"}),
    ("get", "/api/settings/openai/model", None),
])
def test_protected_endpoints_require_session(client, db, fake_openai, method, path, body):
    kwargs = {"json": body} if body is not None else {}
    resp = getattr(client, method)(path, **kwargs)
    assert resp.status_code == 401
    assert resp.json() == {"message": "Unauthorized"}

    assert db.query(Prompt).count() == 0
    assert db.query(ApiKey).count() == 0
    assert fake_openai.completions == []


def test_get_prompts_returns_everything_in_order(auth_client, fake_openai, db):
    add_openai_key(auth_client)
    enhance(auth_client, input="one")
    enhance(auth_client, input="two")

    assert [p.input for p in crud.get_prompts(db)] == ["one", "two"]


def test_unexpected_storage_error_returns_json(make_client, signup, monkeypatch):
    client = make_client(raise_server_exceptions=False)
    signup(client)

    def broken_list(db, user_id):
        raise OperationalError("SELECT prompts", {}, Exception("connection lost"))

    monkeypatch.setattr(crud, "get_prompts_by_user", broken_list)
    resp = client.get("/api/prompts")
    assert resp.status_code == 500
    assert resp.headers["content-type"].startswith("application/json")
    assert resp.json() == {"message": "Internal server error"}


def test_completion_without_choices(auth_client, fake_openai, db):
    add_openai_key(auth_client)
    fake_openai.no_choices = True

    resp = enhance(auth_client)
    assert resp.status_code == 500
    assert resp.json() == {"message": "Failed to enhance prompt"}
    assert db.query(Prompt).count() == 0


def test_openai_client_is_closed_after_each_call(auth_client, fake_openai):
    add_openai_key(auth_client)
    enhance(auth_client)
    fake_openai.error = RuntimeError("boom")
    enhance(auth_client)

    assert fake_openai.closed == 2

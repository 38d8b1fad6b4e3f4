from __future__ import annotations

import pytest

from panelforge.media_generation.image_refiner import DashscopeImageRefiner
from panelforge.utils.errors import RefinementError, RefinementTimeout

from conftest import PNG_BYTES

TASK_URL = "https://edit.test/tasks/{task_id}"


class FakeResponse:
    def __init__(self, payload=None, content=b""):
        self.payload = payload
        self.content = content

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    async def json(self):
        return self.payload

    async def read(self):
        return self.content

    def raise_for_status(self):
        pass


class FakeSession:
    """Serves the submit response, then each queued poll status, then the image."""

    def __init__(self, submit, statuses, image=PNG_BYTES):
        self.submit = submit
        self.statuses = list(statuses)
        self.image = image
        self.posts = []
        self.gets = []

    def post(self, url, json=None, headers=None):
        self.posts.append((url, json, headers))
        return FakeResponse(self.submit)

    def get(self, url, headers=None):
        self.gets.append(url)
        if url.startswith("https://edit.test/tasks/"):
            return FakeResponse(self.statuses.pop(0))
        return FakeResponse(content=self.image)


def _refiner(session, sleep, max_polls=60):
    return DashscopeImageRefiner(
        api_key="k", model="edit-model", submit_url="https://edit.test/submit",
        task_url=TASK_URL, poll_interval=5, max_polls=max_polls, session=session, sleep=sleep,
    )


@pytest.fixture
def panel(tmp_path):
    path = tmp_path / "panel-01.png"
    path.write_bytes(PNG_BYTES)
    return path


@pytest.mark.asyncio
async def test_submit_poll_fetch(panel, sleep):
    session = FakeSession(
        submit={"output": {"task_id": "t1"}},
        statuses=[{"output": {"task_status": "RUNNING"}},
                  {"output": {"task_status": "SUCCEEDED", "results": [{"url": "https://cdn.test/r.png"}]}}],
    )
    out = str(panel.with_name("panel-01-refined.png"))
    assert await _refiner(session, sleep).edit(str(panel), "fix the hands", out) == out

    url, payload, headers = session.posts[0]
    assert payload["model"] == "edit-model"
    assert payload["input"]["prompt"] == "fix the hands"
    assert payload["input"]["base_image_url"].startswith("data:image/png;base64,")
    assert headers["X-DashScope-Async"] == "enable"
    assert session.gets == ["https://edit.test/tasks/t1", "https://edit.test/tasks/t1", "https://cdn.test/r.png"]
    assert sleep.delays == [5, 5]


@pytest.mark.asyncio
async def test_missing_task_id(panel, sleep):
    session = FakeSession(submit={"code": "InvalidApiKey"}, statuses=[])
    with pytest.raises(RefinementError):
        await _refiner(session, sleep).edit(str(panel), "x", str(panel) + ".out")


@pytest.mark.asyncio
async def test_task_failure(panel, sleep):
    session = FakeSession(submit={"output": {"task_id": "t1"}},
                          statuses=[{"output": {"task_status": "FAILED", "message": "nsfw"}}])
    with pytest.raises(RefinementError, match="nsfw"):
        await _refiner(session, sleep).edit(str(panel), "x", str(panel) + ".out")


@pytest.mark.asyncio
async def test_wait_is_bounded(panel, sleep):
    session = FakeSession(submit={"output": {"task_id": "t1"}},
                          statuses=[{"output": {"task_status": "PENDING"}}] * 4)
    with pytest.raises(RefinementTimeout):
        await _refiner(session, sleep, max_polls=4).edit(str(panel), "x", str(panel) + ".out")
    assert sleep.delays == [5, 5, 5, 5]

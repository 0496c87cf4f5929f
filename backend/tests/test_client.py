"""Tests for the API client and CLI, run against the in-process app."""

import json
from pathlib import Path
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from app.main import app
from client import cli
from client.api import ApiError, PromptMakerClient
from services.responses_api import ResponsesResult
from services.upload_coordinator import PART_SIZE

OUTPUT = {"summary": "s", "prompt": "p", "negative_prompt": "n", "tags": ["x"], "notes": ""}


@pytest.fixture
def api() -> PromptMakerClient:
    return PromptMakerClient("", http=TestClient(app))


@pytest.fixture
def big_file(tmp_path: Path) -> Path:
    path = tmp_path / "clip.mp4"
    path.write_bytes(b"\x01" * (2 * PART_SIZE + 1234))
    return path


@pytest.fixture
def storage():
    calls: dict[str, list] = {"parts": [], "complete": [], "abort": []}

    def upload_part(blob_name, upload_id, part_number, filename, size, *, bucket_name=None):
        calls["parts"].append((part_number, size))
        return f'"etag-{part_number}"'

    with (
        patch("services.gcs.start_multipart_upload", return_value="u-1"),
        patch("services.gcs.upload_part", side_effect=upload_part) as part,
        patch(
            "services.gcs.complete_multipart_upload",
            side_effect=lambda key, upload_id, parts, **kw: calls["complete"].append(parts),
        ),
        patch(
            "services.gcs.abort_multipart_upload",
            side_effect=lambda key, upload_id, **kw: calls["abort"].append(key),
        ),
    ):
        calls["part_mock"] = part
        yield calls


def test_upload_video_sends_parts_in_order(api: PromptMakerClient, big_file: Path, storage) -> None:
    progress = []
    key = api.upload_video(big_file, on_progress=lambda n, sent, total: progress.append((n, sent, total)))

    total = big_file.stat().st_size
    assert key.endswith("/clip.mp4")
    assert storage["parts"] == [(1, PART_SIZE), (2, PART_SIZE), (3, 1234)]
    assert storage["complete"] == [[(1, "etag-1"), (2, "etag-2"), (3, "etag-3")]]
    assert progress[-1] == (3, total, total)
    assert storage["abort"] == []


def test_upload_video_aborts_on_failed_part(api: PromptMakerClient, big_file: Path, storage) -> None:
    storage["part_mock"].side_effect = [
        '"etag-1"',
        RuntimeError("network down"),
    ]
    with pytest.raises(ApiError, match="network down") as excinfo:
        api.upload_video(big_file)
    assert excinfo.value.status_code == 500
    assert len(storage["abort"]) == 1
    assert storage["complete"] == []


def test_upload_video_rejects_small_file(api: PromptMakerClient, tmp_path: Path, storage) -> None:
    small = tmp_path / "small.mp4"
    small.write_bytes(b"\x00" * 1024)
    with pytest.raises(ApiError) as excinfo:
        api.upload_video(small)
    assert excinfo.value.status_code == 400
    assert str(excinfo.value) == "File must be at least 10MB."


def test_prompt_and_history_round_trip(api: PromptMakerClient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    result = ResponsesResult(ok=True, status_code=200, detail={"output_text": json.dumps(OUTPUT)})
    with patch("services.responses_api.create_response", return_value=result):
        out = api.make_prompt(["data:image/jpeg;base64,AAAA"], template="sdxl")

    assert out["result"] == OUTPUT
    items = api.list_history()
    assert [i["id"] for i in items] == [out["id"]]
    assert api.get_history(out["id"])["template"] == "sdxl"

    api.delete_history(out["id"])
    with pytest.raises(ApiError) as excinfo:
        api.get_history(out["id"])
    assert excinfo.value.status_code == 404


def test_cli_frames_writes_jpegs(make_video, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    video = make_video(seconds=3)
    out_dir = tmp_path / "frames"
    code = cli.main(["frames", str(video), "--out", str(out_dir), "--frames", "2", "--candidates", "4"])
    assert code == 0
    written = sorted(out_dir.glob("*.jpg"))
    assert len(written) == 2
    assert all(p.read_bytes()[:2] == b"\xff\xd8" for p in written)
    assert str(written[0]) in capsys.readouterr().out


def test_cli_history_list(api: PromptMakerClient, monkeypatch: pytest.MonkeyPatch, capsys) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    result = ResponsesResult(ok=True, status_code=200, detail={"output_text": json.dumps(OUTPUT)})
    with patch("services.responses_api.create_response", return_value=result):
        api.make_prompt(["data:image/jpeg;base64,AAAA"], video_name="beach.mp4")

    with patch("client.cli.PromptMakerClient", return_value=api):
        code = cli.main(["history", "list"])
    assert code == 0
    out = capsys.readouterr().out
    assert "general" in out
    assert "beach.mp4" in out


def test_cli_run_rejects_non_mp4(tmp_path: Path) -> None:
    video = tmp_path / "clip.mov"
    video.write_bytes(b"\x00" * 16)
    assert cli.main(["run", str(video)]) == 1


def test_cli_without_command_prints_help(capsys) -> None:
    assert cli.main([]) == 1
    assert "prompt-maker" in capsys.readouterr().out
